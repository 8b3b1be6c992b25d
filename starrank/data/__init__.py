from .pool import PopularItemPool
from .samplers import NegativeBalancer, sample_negatives
from .schemas import (
    Candidate,
    Interaction,
    LabeledExample,
    ScoredCandidate,
    UserItems,
    to_frame,
    user_items_from_mapping,
    user_items_to_mapping,
)
from .splitters import RandomSplitter
from .user_items import (
    into_user_actual_items,
    into_user_predicted_items,
    user_items_to_frame,
)

__all__ = [
    # Schemas
    "Interaction",
    "LabeledExample",
    "Candidate",
    "ScoredCandidate",
    "UserItems",
    "to_frame",
    "user_items_from_mapping",
    "user_items_to_mapping",
    # Sampling
    "PopularItemPool",
    "NegativeBalancer",
    "sample_negatives",
    # Splitting
    "RandomSplitter",
    # User items
    "into_user_predicted_items",
    "into_user_actual_items",
    "user_items_to_frame",
]
