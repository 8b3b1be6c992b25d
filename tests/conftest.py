import numpy as np
import pandas as pd
import pytest

from starrank.constants import IID, UID
from starrank.data import PopularItemPool


@pytest.fixture
def starring() -> pd.DataFrame:
    return pd.DataFrame(
        {
            UID: [1, 1, 1, 2, 2, 3],
            IID: [10, 20, 30, 10, 40, 50],
        }
    )


@pytest.fixture
def pool() -> PopularItemPool:
    return PopularItemPool(np.arange(10, 110, 10))
