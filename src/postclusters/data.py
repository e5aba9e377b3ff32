"""
Data loading: load_posts().
"""

from typing import Optional
import pandas as pd

from .config import TEXT_COLUMN, RANDOM_SEED


def load_posts(
    csv_path: str,
    text_column: str = TEXT_COLUMN,
    sample_size: Optional[int] = None,
    random_seed: int = RANDOM_SEED,
) -> pd.DataFrame:
    """
    Load exported posts and prepare them for embedding.

    Args:
        csv_path: Path to the archive export (one row per post)
        text_column: Column holding the post text
        sample_size: Optional number of posts to sample
        random_seed: Random seed for reproducibility

    Returns:
        DataFrame with all original columns plus:
        - full_text: post text as string ("" when missing)
        - record_id: position in the (sampled) input order

    Note: Posts with empty text are kept. The embedding pipeline marks them
    absent instead of sending them to the API.
    """
    df = pd.read_csv(csv_path)

    if text_column not in df.columns:
        raise ValueError(
            f"Column '{text_column}' not found in {csv_path}. Available: {list(df.columns)}"
        )

    df[text_column] = df[text_column].apply(lambda v: "" if pd.isna(v) else str(v))
    df["full_text"] = df[text_column]

    # Sample if requested (keeps original relative order)
    if sample_size and sample_size < len(df):
        df = df.sample(n=sample_size, random_state=random_seed).sort_index()

    df = df.reset_index(drop=True)
    df["record_id"] = range(len(df))
    return df
