from .fusion import CandidateFusion, fuse, merge_candidates, to_candidate_frame
from .generators import (
    Generator,
    curated_generator,
    popularity_generator,
    precomputed_generator,
)

__all__ = [
    "Generator",
    "popularity_generator",
    "curated_generator",
    "precomputed_generator",
    "CandidateFusion",
    "fuse",
    "merge_candidates",
    "to_candidate_frame",
]
