import numpy as np
import pandas as pd
import pytest

from starrank.config import RankerConfig
from starrank.constants import (
    IID,
    ITEM_FEATURES,
    LABEL,
    PROBABILITY,
    UID,
    USER_FEATURES,
)
from starrank.data import PopularItemPool
from starrank.models import LogisticRegressionClassifier
from starrank.pipeline import RankerPipeline, assemble_features
from starrank.recommenders import popularity_generator


@pytest.fixture
def world():
    rng = np.random.default_rng(0)
    num_users, num_items = 20, 30
    user_profiles = pd.DataFrame(
        {
            UID: np.arange(num_users),
            USER_FEATURES: list(rng.normal(size=(num_users, 3))),
        }
    )
    item_profiles = pd.DataFrame(
        {
            IID: np.arange(num_items),
            ITEM_FEATURES: list(rng.normal(size=(num_items, 3))),
        }
    )
    rows = [
        (uid, iid)
        for uid in range(num_users)
        for iid in range(num_items)
        if (uid + iid) % 3 == 0
    ]
    starring = pd.DataFrame(rows, columns=[UID, IID])
    return starring, user_profiles, item_profiles


def _pipeline(tmp_path, user_profiles, item_profiles):
    config = RankerConfig(data_dir=str(tmp_path), top_k=5, seed=0, max_iter=20)
    return RankerPipeline(
        config=config,
        classifier=LogisticRegressionClassifier(max_iter=20, seed=0),
        user_profiles=user_profiles,
        item_profiles=item_profiles,
    )


def test_assemble_features_concatenates_vectors_and_scalars():
    frame = pd.DataFrame(
        {"v": [np.array([1.0, 2.0]), np.array([3.0, 4.0])], "s": [5, 6]}
    )
    features = assemble_features(frame, ["v", "s"])
    assert features.tolist() == [[1.0, 2.0, 5.0], [3.0, 4.0, 6.0]]


def test_training_set_is_balanced_and_featured(tmp_path, world):
    starring, user_profiles, item_profiles = world
    pipeline = _pipeline(tmp_path, user_profiles, item_profiles)
    pool = PopularItemPool.from_interactions(starring)

    featured = pipeline.build_training_set(starring, pool)
    assert (featured[LABEL] == 1.0).sum() == len(starring)
    assert (featured[LABEL] == 0.0).sum() == len(starring)
    assert {USER_FEATURES, ITEM_FEATURES} <= set(featured.columns)


def test_run_end_to_end(tmp_path, world):
    starring, user_profiles, item_profiles = world
    pipeline = _pipeline(tmp_path, user_profiles, item_profiles)
    pool = PopularItemPool.from_interactions(starring)
    generators = {"popularity": popularity_generator(pool, top_k=10)}

    result = pipeline.run(starring, pool, generators, extra_users=[0], cache=True)

    assert result.metric_name == "NDCG@5"
    assert 0.0 <= result.metric <= 1.0
    assert all(len(items) <= 5 for items in result.predicted.values())
    assert result.scored[PROBABILITY].between(0.0, 1.0).all()
    assert 0 in set(result.scored[UID])
    assert pipeline.config.cache_path("featured.feather").exists()


def test_scoring_requires_a_fitted_ranker(tmp_path, world):
    _, user_profiles, item_profiles = world
    pipeline = _pipeline(tmp_path, user_profiles, item_profiles)
    with pytest.raises(ValueError):
        pipeline.score(pd.DataFrame({UID: [0], IID: [0]}))


def test_failed_generators_leave_nothing_to_score(tmp_path, world):
    starring, user_profiles, item_profiles = world
    pipeline = _pipeline(tmp_path, user_profiles, item_profiles)
    pool = PopularItemPool.from_interactions(starring)
    pipeline.fit(pipeline.build_training_set(starring, pool))

    def broken(users):
        raise RuntimeError("offline")

    scored, predicted = pipeline.recommend({0, 1}, [broken])
    assert len(scored) == 0
    assert predicted == {}
