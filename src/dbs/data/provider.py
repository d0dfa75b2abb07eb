from typing import Protocol
import pandas as pd

class TriggerSource(Protocol):
    """Yields trigger events as a DataFrame with at least ``t_ms`` and ``arg`` columns."""
    def fetch(self) -> pd.DataFrame: ...
