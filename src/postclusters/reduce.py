"""
Dimensionality reduction: embedding_matrix(), reduce_embeddings().
"""

from typing import Tuple

import numpy as np
import pandas as pd

from .config import UMAP_PARAMS, RANDOM_SEED
from .schema import is_embedded


def embedding_matrix(df: pd.DataFrame, column: str = "embedding") -> Tuple[np.ndarray, np.ndarray]:
    """
    Stack embedded rows into a matrix.

    Returns:
        (matrix, mask): mask is True for rows kept. Absent, pending and
        NaN-containing vectors are dropped.
    """
    values = df[column].tolist()
    mask = np.array([is_embedded(v) for v in values], dtype=bool)
    rows = [np.asarray(v, dtype=float) for v, keep in zip(values, mask) if keep]

    if rows:
        lengths = {len(r) for r in rows}
        if len(lengths) > 1:
            raise ValueError(f"Embeddings have mixed lengths: {sorted(lengths)}")
        matrix = np.vstack(rows)
        # Partially-NaN vectors are not usable either
        complete = ~np.isnan(matrix).any(axis=1)
        if not complete.all():
            kept_positions = np.flatnonzero(mask)
            mask[kept_positions[~complete]] = False
            matrix = matrix[complete]
    else:
        matrix = np.empty((0, 0))
    return matrix, mask


def reduce_embeddings(
    df: pd.DataFrame,
    n_components: int = UMAP_PARAMS["n_components"],
    n_neighbors: int = UMAP_PARAMS["n_neighbors"],
    min_dist: float = UMAP_PARAMS["min_dist"],
    metric: str = UMAP_PARAMS["metric"],
    random_state: int = RANDOM_SEED,
    verbose: bool = True,
) -> Tuple[np.ndarray, pd.DataFrame]:
    """
    Reduce embeddings with UMAP.

    Args:
        df: Output of the embedding pipeline
        n_components: Output dimensions for clustering
        n_neighbors: Local neighborhood size
        min_dist: Minimum distance between points
        metric: Distance metric ("cosine" for text embeddings)
        random_state: Seed for reproducibility
        verbose: Print progress and matrix statistics

    Returns:
        (reduced matrix, DataFrame aligned row-for-row with the matrix)
    """
    import umap

    matrix, mask = embedding_matrix(df)
    if verbose:
        print(f"Embedding matrix: {matrix.shape[0]} x {matrix.shape[1] if matrix.size else 0}")
        n_dropped = int((~mask).sum())
        if n_dropped:
            print(f"Found {n_dropped} rows without embeddings, removing...")
            print(f"Remaining: {matrix.shape[0]} posts")

    if matrix.shape[0] <= n_neighbors:
        raise ValueError(
            f"UMAP needs more than n_neighbors={n_neighbors} rows, got {matrix.shape[0]}"
        )

    if verbose:
        print(f"\nRunning UMAP reduction to {n_components}D...")
        print(f"Parameters: n_neighbors={n_neighbors}, min_dist={min_dist:.2f}, metric={metric}")

    reducer = umap.UMAP(
        n_neighbors=n_neighbors,
        min_dist=min_dist,
        n_components=n_components,
        metric=metric,
        random_state=random_state,
        verbose=verbose,
    )
    reduced = reducer.fit_transform(matrix)
    aligned = df.loc[mask].reset_index(drop=True)

    if verbose:
        print(f"\nOutput dimensions: {reduced.shape[0]} x {reduced.shape[1]}")
        print(f"  Value range: [{reduced.min():.3f}, {reduced.max():.3f}]")
        print(f"  Mean: {reduced.mean():.3f}")
        print(f"  SD: {reduced.std(ddof=1):.3f}")

    return reduced, aligned
