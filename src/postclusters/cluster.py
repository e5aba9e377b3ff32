"""
K-means clustering: evaluate_k_range(), composite_scores(), assign_clusters().

Cluster ids are 1-based; 0 is reserved for noise (k-means produces none).
"""

from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.metrics import (
    calinski_harabasz_score,
    davies_bouldin_score,
    silhouette_score,
)
from tqdm import tqdm

from .config import (
    K_RANGE,
    N_INIT,
    MAX_ITER,
    FINAL_N_INIT,
    FINAL_MAX_ITER,
    METRIC_SAMPLE_SIZE,
    RANDOM_SEED,
    WEIGHTS,
)

METRICS = ["silhouette", "davies_bouldin", "calinski_harabasz", "bss_tss"]


def total_sum_of_squares(X: np.ndarray) -> float:
    """Sum of squared distances to the overall mean."""
    return float(((X - X.mean(axis=0)) ** 2).sum())


def evaluate_k_range(
    X: np.ndarray,
    k_range: Iterable[int] = K_RANGE,
    n_init: int = N_INIT,
    max_iter: int = MAX_ITER,
    sample_size: int = METRIC_SAMPLE_SIZE,
    random_state: int = RANDOM_SEED,
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Fit k-means for each k and compute quality metrics.

    Silhouette and Calinski-Harabasz use one fixed random sample of
    `sample_size` rows when X is larger than that.

    Returns:
        DataFrame with columns: k, silhouette, davies_bouldin,
        calinski_harabasz, bss_tss, wss
    """
    k_values = list(k_range)
    n = X.shape[0]
    if not k_values:
        raise ValueError("k_range is empty")
    if max(k_values) >= n:
        raise ValueError(f"k must be smaller than the number of rows ({n}), got max k={max(k_values)}")

    rng = np.random.default_rng(random_state)
    sample_idx = np.sort(rng.choice(n, size=sample_size, replace=False)) if n > sample_size else None
    tss = total_sum_of_squares(X)

    rows = []
    for k in tqdm(k_values, desc="k-means sweep", disable=not verbose):
        km = KMeans(n_clusters=k, n_init=n_init, max_iter=max_iter, random_state=random_state)
        labels = km.fit_predict(X)

        if sample_idx is not None:
            X_s, labels_s = X[sample_idx], labels[sample_idx]
        else:
            X_s, labels_s = X, labels

        # A sample can miss clusters; metrics need at least 2 labels present
        if len(np.unique(labels_s)) > 1:
            sil = silhouette_score(X_s, labels_s)
            ch = calinski_harabasz_score(X_s, labels_s)
        else:
            sil, ch = np.nan, np.nan

        wss = float(km.inertia_)
        rows.append({
            "k": k,
            "silhouette": float(sil),
            "davies_bouldin": float(davies_bouldin_score(X, labels)),
            "calinski_harabasz": float(ch),
            "bss_tss": (tss - wss) / tss if tss > 0 else 0.0,
            "wss": wss,
        })

    return pd.DataFrame(rows)


def _minmax(series: pd.Series) -> pd.Series:
    return (series - series.min()) / (series.max() - series.min() + 1e-10)


def composite_scores(results: pd.DataFrame, weights: Optional[Dict[str, float]] = None) -> pd.DataFrame:
    """
    Normalize metrics to [0, 1] and combine them into a weighted score.

    Davies-Bouldin is inverted (lower is better). Sorted best first.
    """
    weights = weights or WEIGHTS
    missing = set(METRICS) - set(weights)
    if missing:
        raise ValueError(f"Missing weights for: {sorted(missing)}")

    out = results.copy()
    out["sil_norm"] = _minmax(out["silhouette"])
    out["db_norm"] = 1 - _minmax(out["davies_bouldin"])
    out["ch_norm"] = _minmax(out["calinski_harabasz"])
    out["bss_norm"] = _minmax(out["bss_tss"])
    out["composite_score"] = (
        out["sil_norm"] * weights["silhouette"]
        + out["db_norm"] * weights["davies_bouldin"]
        + out["ch_norm"] * weights["calinski_harabasz"]
        + out["bss_norm"] * weights["bss_tss"]
    )
    return out.sort_values("composite_score", ascending=False).reset_index(drop=True)


def assign_clusters(
    df: pd.DataFrame,
    X: np.ndarray,
    k: int,
    n_init: int = FINAL_N_INIT,
    max_iter: int = FINAL_MAX_ITER,
    random_state: int = RANDOM_SEED,
) -> pd.DataFrame:
    """
    Final clustering with the chosen k.

    Returns:
        Copy of df with:
        - cluster: 1..k
        - membership_prob: 1 - normalized distance to own centroid
          (higher = more typical of its cluster)
    """
    if X.shape[0] != len(df):
        raise ValueError(f"Dimension mismatch: matrix has {X.shape[0]} rows, DataFrame has {len(df)}")

    km = KMeans(n_clusters=k, n_init=n_init, max_iter=max_iter, random_state=random_state)
    labels = km.fit_predict(X)

    distances = np.linalg.norm(X - km.cluster_centers_[labels], axis=1)
    spread = distances.max() - distances.min()
    membership = 1 - (distances - distances.min()) / spread if spread > 0 else np.ones(len(distances))

    out = df.copy()
    out["cluster"] = labels + 1
    out["membership_prob"] = membership
    return out


def cluster_sizes(df: pd.DataFrame) -> pd.DataFrame:
    """Posts per cluster, largest first, with share in percent."""
    counts = df["cluster"].value_counts()
    return pd.DataFrame({
        "cluster": counts.index,
        "n_posts": counts.values,
        "pct": counts.values / counts.sum() * 100,
    })
