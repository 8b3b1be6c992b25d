import os
from pathlib import Path

FRAMEWORK_NAME = "StarRank"
"""The name of the framework."""

# Cache directory
_DEFAULT_CACHE_DIR = Path.home() / ".cache" / FRAMEWORK_NAME
CACHE_DIR = Path(os.getenv("STARRANK_CACHE_DIR", _DEFAULT_CACHE_DIR))
"""The cache directory."""

# Column names in the interaction data
UID = "user_id"
"""The column name of user IDs."""
IID = "repo_id"
"""The column name of item (repository) IDs."""
LABEL = "starring"
"""The column name of labels."""
TIMESTAMP = "starred_at"
"""The column name of timestamps (optional)."""

# Column names in the profile data
USER_FEATURES = "user_features"
"""The column name of user feature vectors."""
ITEM_FEATURES = "repo_features"
"""The column name of item feature vectors."""

# Column names in the ranking data
PROBABILITY = "probability"
"""The column name of predicted probabilities of the positive class."""
ITEMS = "items"
"""The column name of per-user item lists."""
NUM_SOURCES = "num_sources"
"""The column name of the number of generators proposing a candidate (optional)."""

# Defaults
DEFAULT_SEED = 2022
DEFAULT_TOP_K = 30
DEFAULT_NEGATIVE_VALUE = 0.0
DEFAULT_NEGATIVE_POSITIVE_RATIO = 1.0

# Configurations
CONFIG_YAML = "config.yaml"
"""The name of the config YAML file."""
