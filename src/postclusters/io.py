"""
I/O helpers: save_output(), load_output(), save_results(), save_manifest().
"""

import json
from pathlib import Path
from datetime import datetime
from typing import Any, Dict

import pandas as pd


def save_output(df: pd.DataFrame, filepath: str) -> str:
    """
    Save a Record DataFrame (embedding column included) as a pickle.

    Args:
        df: DataFrame to save
        filepath: Destination path

    Returns:
        Path to saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_pickle(path)
    return str(path)


def load_output(filepath: str) -> pd.DataFrame:
    """Load a DataFrame written by save_output()."""
    return pd.read_pickle(filepath)


def to_csv_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Drop the embedding column and flatten list cells for CSV export."""
    out = df.drop(columns=["embedding"], errors="ignore").copy()
    for col in out.columns:
        if out[col].dtype == object:
            out[col] = out[col].apply(
                lambda v: " | ".join(str(x) for x in v) if isinstance(v, (list, tuple)) else v
            )
    return out


def save_results(df: pd.DataFrame, output_dir: str = "results", prefix: str = "posts") -> str:
    """
    Save results to CSV with timestamp.

    Args:
        df: DataFrame with results
        output_dir: Output directory
        prefix: Filename prefix

    Returns:
        Path to saved file
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = output_path / f"{prefix}_{timestamp}.csv"

    to_csv_frame(df).to_csv(filename, index=False)
    return str(filename)


def save_manifest(info: Dict[str, Any], output_dir: str = "results", name: str = "manifest") -> str:
    """Write run metadata (versions, parameters, counts) as JSON."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    filename = output_path / f"{name}.json"
    with open(filename, 'w', encoding='utf-8') as f:
        json.dump(info, f, indent=2, default=str)
    return str(filename)
