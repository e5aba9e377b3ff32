"""
Cluster labeling: ClusterLabeler, label_clusters(), attach_labels().
"""

import os
import re
import time
import random
from typing import Callable, List, Optional

import openai
import pandas as pd
from openai import OpenAI

from .config import (
    LABEL_MODEL,
    LABEL_PROMPT,
    SAMPLES_PER_CLUSTER,
    LABEL_RATE_LIMIT_DELAY,
    RANDOM_SEED,
)
from .schema import ConfigurationError, load_env


def build_label_prompt(texts: List[str], cluster_id: int) -> str:
    """Fill the frozen labeling prompt with sample posts."""
    samples = "\n\n---\n\n".join(texts)
    return LABEL_PROMPT.format(cluster_id=cluster_id, samples=samples)


def clean_label(raw: Optional[str]) -> Optional[str]:
    """Trim whitespace and surrounding quotes. Empty -> None."""
    if raw is None:
        return None
    label = raw.strip()
    label = re.sub(r'^["\']|["\']$', '', label).strip()
    return label or None


class ClusterLabeler:
    """
    Labels clusters with a chat model.

    Usage:
        labeler = ClusterLabeler()
        label = labeler.label(["post 1", "post 2"], cluster_id=3)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        env_path: Optional[str] = None,
        client: Optional[OpenAI] = None,
        model: str = LABEL_MODEL["name"],
        verbose: bool = True,
    ):
        self.model = model
        self.params = dict(LABEL_MODEL["params"])
        self.verbose = verbose
        if client is not None:
            self.client = client
            return

        load_env(env_path)
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable not set.")
        self.client = OpenAI(api_key=api_key, timeout=60.0)

    def label(self, texts: List[str], cluster_id: int) -> Optional[str]:
        """Return a short label, or None if the API call fails."""
        prompt = build_label_prompt(texts, cluster_id)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.params["temperature"],
                max_tokens=self.params["max_tokens"],
            )
        except openai.OpenAIError as e:
            print(f"Warning: API error for cluster {cluster_id}: {e}")
            return None

        if not response.choices:
            print(f"Warning: empty response for cluster {cluster_id}")
            return None
        return clean_label(response.choices[0].message.content)


def label_clusters(
    df: pd.DataFrame,
    labeler: ClusterLabeler,
    samples_per_cluster: int = SAMPLES_PER_CLUSTER,
    rate_limit_delay: float = LABEL_RATE_LIMIT_DELAY,
    random_seed: int = RANDOM_SEED,
    text_column: str = "full_text",
    sleep: Callable[[float], None] = time.sleep,
    verbose: bool = True,
) -> pd.DataFrame:
    """
    Label every cluster except 0 (noise).

    Args:
        df: Clustered DataFrame (needs `cluster` and the text column)
        labeler: Anything with label(texts, cluster_id)
        samples_per_cluster: Posts sampled per cluster for the prompt
        rate_limit_delay: Base seconds between calls (plus up to 1s jitter)
        random_seed: Seed for sampling and jitter
        text_column: Column holding the post text
        sleep: Injectable sleep
        verbose: Print progress

    Returns:
        DataFrame with columns: cluster, cluster_label, n_posts
    """
    rng = random.Random(random_seed)
    clusters = sorted(c for c in df["cluster"].unique() if c != 0)
    if verbose:
        print(f"Found {len(clusters)} clusters to label\n")

    rows = []
    for i, cluster_id in enumerate(clusters):
        texts = df.loc[df["cluster"] == cluster_id, text_column]
        texts = texts[texts.apply(lambda t: isinstance(t, str) and t.strip() != "")]
        n_posts = len(texts)

        if verbose:
            print(f"Processing Cluster {cluster_id}... ", end="")

        if n_posts == 0:
            if verbose:
                print("no valid posts, skipping")
            rows.append({"cluster": int(cluster_id), "cluster_label": None, "n_posts": 0})
            continue

        n_sample = min(samples_per_cluster, n_posts)
        sampled = texts.sample(n=n_sample, random_state=random_seed).tolist()
        label = labeler.label(sampled, int(cluster_id))
        rows.append({"cluster": int(cluster_id), "cluster_label": label, "n_posts": n_posts})

        if verbose:
            print(f"'{label}' (n={n_posts})")

        # Rate limiting
        if i < len(clusters) - 1:
            sleep(rate_limit_delay + rng.random())

    return pd.DataFrame(rows, columns=["cluster", "cluster_label", "n_posts"])


def attach_labels(df: pd.DataFrame, labels_df: pd.DataFrame) -> pd.DataFrame:
    """Left-join labels onto posts; the embedding column is dropped."""
    out = df.drop(columns=["embedding"], errors="ignore")
    return out.merge(labels_df[["cluster", "cluster_label"]], on="cluster", how="left")
