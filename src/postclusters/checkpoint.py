"""
Checkpoint stores: FileCheckpointStore, MemoryCheckpointStore.

A store holds at most one snapshot of the Record DataFrame. The pipeline
calls load() once at startup, save() after checkpoint batches, clear() after
a completed run.
"""

import os
from pathlib import Path
from typing import Optional

import pandas as pd


class FileCheckpointStore:
    """Pickled DataFrame on disk. Writes go to a temp file, then replace."""

    def __init__(self, path: str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[pd.DataFrame]:
        if not self.path.exists():
            return None
        return pd.read_pickle(self.path)

    def save(self, df: pd.DataFrame) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        df.to_pickle(tmp_path)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def __repr__(self):
        return f"FileCheckpointStore({str(self.path)!r})"


class MemoryCheckpointStore:
    """In-process store. Keeps copies so later mutation can't leak in."""

    def __init__(self, df: Optional[pd.DataFrame] = None):
        self._df = df.copy(deep=True) if df is not None else None
        self.saves = 0

    def exists(self) -> bool:
        return self._df is not None

    def load(self) -> Optional[pd.DataFrame]:
        return self._df.copy(deep=True) if self._df is not None else None

    def save(self, df: pd.DataFrame) -> None:
        self._df = df.copy(deep=True)
        self.saves += 1

    def clear(self) -> None:
        self._df = None
