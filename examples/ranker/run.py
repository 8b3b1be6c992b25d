import logging
import sys
from pathlib import Path

import pandas as pd

from starrank.config import RankerConfig
from starrank.constants import IID, PROBABILITY, UID
from starrank.data import PopularItemPool
from starrank.models import LogisticRegressionClassifier
from starrank.pipeline import RankerPipeline
from starrank.recommenders import (
    curated_generator,
    popularity_generator,
    precomputed_generator,
)
from starrank.utils.logger import init_starrank_logger, logger

# Expected files in the data directory:
#   starring.feather      user_id, repo_id, starred_at
#   user_profile.feather  user_id, user_features
#   repo_profile.feather  repo_id, repo_features, stargazers_count
#   als.feather           user_id, repo_id, score (optional)
#   curated.feather       repo_id (optional)
ME = 652070


def load_frame(data_dir: Path, name: str) -> pd.DataFrame | None:
    path = data_dir / f"{name}.feather"
    if not path.exists():
        return None
    logger.info(f"Loading {path.name} ...")
    return pd.read_feather(path)


def main(config_path: str) -> None:
    config = RankerConfig.from_yaml(config_path)
    data_dir = Path(config.data_dir).expanduser()
    init_starrank_logger(config.cache_path(""), level=logging.DEBUG)

    starring = load_frame(data_dir, "starring")
    user_profiles = load_frame(data_dir, "user_profile")
    repo_profiles = load_frame(data_dir, "repo_profile")
    if starring is None or user_profiles is None or repo_profiles is None:
        raise FileNotFoundError(f"Missing input frames in {data_dir}")

    pool = PopularItemPool.from_popularity(
        repo_profiles,
        "stargazers_count",
        item_col=config.item_col,
        size=config.popular_pool_size,
    )

    generators = {
        "popularity": popularity_generator(pool, config.top_k),
    }
    als = load_frame(data_dir, "als")
    if als is not None:
        generators["als"] = precomputed_generator(
            als, config.top_k * 2, score_col="score", name="als"
        )
    curated = load_frame(data_dir, "curated")
    if curated is not None:
        generators["curation"] = curated_generator(curated[IID], config.top_k)

    pipeline = RankerPipeline(
        config=config,
        classifier=LogisticRegressionClassifier(
            max_iter=config.max_iter,
            reg_param=config.reg_param,
            standardization=config.standardization,
            seed=config.seed,
        ),
        user_profiles=user_profiles[[UID, "user_features"]],
        item_profiles=repo_profiles[[IID, "repo_features"]],
    )
    result = pipeline.run(starring, pool, generators, extra_users=[ME], cache=True)

    my_items = result.scored[result.scored[UID] == ME]
    print(
        my_items[[UID, IID, PROBABILITY]]
        .sort_values(by=PROBABILITY, ascending=False, kind="stable")
        .head(config.top_k)
        .to_string(index=False)
    )
    print(f"{result.metric_name} = {result.metric}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "examples/ranker")
