from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np
import pandas as pd

from .config import RankerConfig
from .constants import ITEM_FEATURES, PROBABILITY, TIMESTAMP, USER_FEATURES
from .data.pool import PopularItemPool
from .data.samplers import NegativeBalancer
from .data.splitters import RandomSplitter
from .data.user_items import into_user_actual_items, into_user_predicted_items
from .metrics.evaluator import RankingEvaluator
from .recommenders.fusion import CandidateFusion
from .recommenders.generators import Generator
from .utils.asserts import assert_columns, assert_type
from .utils.data import load_or_create_frame
from .utils.logger import logger

_FEATURED_FRAME = "featured.feather"


class Classifier(Protocol):
    """A binary classifier trained on feature matrices."""

    def fit(self, features: np.ndarray, labels: np.ndarray) -> Any:
        ...

    def predict_proba(self, features: np.ndarray) -> np.ndarray:
        """Return the probability of the positive class of each row."""
        ...


def assemble_features(frame: pd.DataFrame, input_cols: Sequence[str]) -> np.ndarray:
    """Concatenate scalar and vector columns into one feature matrix.

    :param frame: The frame holding the columns.
    :param input_cols: The columns to concatenate, in order.
    :return: A float matrix of shape (rows, features).
    """
    assert_columns(frame, input_cols)
    if len(frame) == 0:
        return np.empty((0, 0), dtype=np.float64)
    blocks: list[np.ndarray] = []
    for col in input_cols:
        values = frame[col].to_numpy()
        if values.dtype == np.object_:
            blocks.append(np.vstack([np.asarray(v, dtype=np.float64) for v in values]))
        else:
            blocks.append(values.astype(np.float64).reshape(-1, 1))
    return np.hstack(blocks)


@dataclass(slots=True)
class RankingResult:
    metric_name: str
    """The formatted metric name, e.g. ``NDCG@30``."""
    metric: float
    scored: pd.DataFrame
    """The scored candidates of the evaluated users."""
    predicted: dict[Any, list]
    """The top-k items of each evaluated user."""


@dataclass(slots=True)
class RankerPipeline:
    """Train a classifier on balanced interactions and rank fused candidates.

    The user and item profile frames hold one feature vector per user or item and
    are joined to the training examples and to the candidates.
    """

    config: RankerConfig
    classifier: Classifier
    user_profiles: pd.DataFrame
    item_profiles: pd.DataFrame
    feature_cols: tuple[str, ...] = (USER_FEATURES, ITEM_FEATURES)
    fitted: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        assert_type(self.config, RankerConfig)
        assert_columns(self.user_profiles, [self.config.user_col])
        assert_columns(self.item_profiles, [self.config.item_col])

    def featurize(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Join the user and item profiles to (user, item) rows."""
        featured = frame.merge(self.user_profiles, on=self.config.user_col).merge(
            self.item_profiles, on=self.config.item_col
        )
        if len(featured) < len(frame):
            logger.debug(
                "  dropped %d rows without profiles", len(frame) - len(featured)
            )
        return featured

    def build_training_set(
        self,
        interactions: pd.DataFrame,
        pool: PopularItemPool,
        cache: bool = False,
    ) -> pd.DataFrame:
        """Balance the interactions with negatives and join the profiles.

        :param interactions: The positive interactions.
        :param pool: The popular item pool negatives are sampled from.
        :param cache: Whether to load or save the result under the date-stamped
            data directory.
        :return: The featured training examples.
        """
        config = self.config

        def create() -> pd.DataFrame:
            balancer = NegativeBalancer(
                pool,
                user_col=config.user_col,
                item_col=config.item_col,
                label_col=config.label_col,
                negative_value=config.negative_value,
                negative_positive_ratio=config.negative_positive_ratio,
                seed=config.seed,
                num_workers=config.num_workers,
            )
            return self.featurize(balancer(interactions))

        if cache:
            return load_or_create_frame(config.cache_path(_FEATURED_FRAME), create)
        return create()

    def fit(self, training: pd.DataFrame) -> "RankerPipeline":
        logger.info("Training the ranker on %d examples ...", len(training))
        features = assemble_features(training, self.feature_cols)
        labels = training[self.config.label_col].to_numpy()
        self.classifier.fit(features, labels)
        self.fitted = True
        return self

    def score(self, candidates: pd.DataFrame) -> pd.DataFrame:
        """Attach the probability of the positive class to each candidate."""
        if not self.fitted:
            raise ValueError("The ranker is not fitted yet.")
        if len(candidates) == 0:
            return candidates.assign(**{PROBABILITY: np.empty(0, dtype=np.float64)})
        featured = self.featurize(candidates)
        if len(featured) == 0:
            return featured.assign(**{PROBABILITY: np.empty(0, dtype=np.float64)})
        features = assemble_features(featured, self.feature_cols)
        return featured.assign(
            **{PROBABILITY: np.asarray(self.classifier.predict_proba(features))}
        )

    def recommend(
        self,
        users: Collection,
        generators: Sequence[Generator] | Mapping[str, Generator],
    ) -> tuple[pd.DataFrame, dict[Any, list]]:
        """Fuse candidates for ``users``, score them and keep the top-k of each.

        :return: The scored candidates and the ranked items of each user.
        """
        config = self.config
        fusion = CandidateFusion(
            generators,
            user_col=config.user_col,
            item_col=config.item_col,
            timeout=config.generator_timeout,
        )
        scored = self.score(fusion(users))
        predicted = into_user_predicted_items(
            scored,
            user_col=config.user_col,
            item_col=config.item_col,
            score_col=PROBABILITY,
            k=config.top_k,
        )
        return scored, predicted

    def run(
        self,
        interactions: pd.DataFrame,
        pool: PopularItemPool,
        generators: Sequence[Generator] | Mapping[str, Generator],
        actual_interactions: pd.DataFrame | None = None,
        extra_users: Iterable = (),
        cache: bool = False,
    ) -> RankingResult:
        """Train, recommend and evaluate end to end.

        The featured examples are split into training and test sets. The evaluated
        users are the users with a positive test example plus ``extra_users``.

        :param interactions: The positive interactions.
        :param pool: The popular item pool.
        :param generators: The candidate generators.
        :param actual_interactions: The held-out relevant interactions; the
            positive test examples when ``None``.
        :param extra_users: Users always evaluated.
        :param cache: Whether to cache the featured examples.
        :return: The metric with the scored candidates and predictions.
        """
        config = self.config
        featured = self.build_training_set(interactions, pool, cache=cache)
        training, test = RandomSplitter(
            (1 - config.test_ratio, config.test_ratio), seed=config.seed
        )(featured)
        self.fit(training)

        test_positives = test[test[config.label_col] > 0]
        test_users = set(test_positives[config.user_col]) | set(extra_users)

        if actual_interactions is None:
            actual_interactions = test_positives
        order_col = TIMESTAMP if TIMESTAMP in actual_interactions.columns else None
        actual = into_user_actual_items(
            actual_interactions,
            user_col=config.user_col,
            item_col=config.item_col,
            label_col=config.label_col,
            order_col=order_col,
            k=config.top_k,
        )
        actual = {uid: items for uid, items in actual.items() if uid in test_users}

        scored, predicted = self.recommend(test_users, generators)

        evaluator = RankingEvaluator(
            actual, metric_name=config.metric_name, k=config.top_k
        )
        metric = evaluator.evaluate(predicted)
        return RankingResult(
            metric_name=evaluator.formatted_metric_name,
            metric=metric,
            scored=scored,
            predicted=predicted,
        )
