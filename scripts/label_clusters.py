#!/usr/bin/env python3
"""
Step 5: Label clusters with a chat model (gpt-4o)

Input:  results/posts_with_clusters.pkl
Output: results/posts_with_labels.csv, results/cluster_labels.csv

Usage:
    poetry run python scripts/label_clusters.py
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from postclusters import (
    ClusterLabeler,
    ConfigurationError,
    attach_labels,
    label_clusters,
    load_output,
    save_output,
)
from postclusters.io import to_csv_frame
from postclusters.config import SAMPLES_PER_CLUSTER, LABEL_RATE_LIMIT_DELAY, RANDOM_SEED


def main():
    parser = argparse.ArgumentParser(description="Label clusters with OpenAI")
    parser.add_argument("--input", type=str, default="results/posts_with_clusters.pkl")
    parser.add_argument("--output-dir", type=str, default="results")
    parser.add_argument("--samples", type=int, default=SAMPLES_PER_CLUSTER,
                        help=f"Posts sampled per cluster (default: {SAMPLES_PER_CLUSTER})")
    parser.add_argument("--delay", type=float, default=LABEL_RATE_LIMIT_DELAY,
                        help=f"Seconds between calls (default: {LABEL_RATE_LIMIT_DELAY})")
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument("--env", type=str, default=None, help="Path to .env file")

    args = parser.parse_args()

    try:
        labeler = ClusterLabeler(env_path=args.env)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return 1

    print("Loading clustered data...")
    df = load_output(args.input)

    print("\nGenerating cluster labels...\n")
    labels_df = label_clusters(
        df,
        labeler,
        samples_per_cluster=args.samples,
        rate_limit_delay=args.delay,
        random_seed=args.seed,
    )

    print("\n" + "=" * 60)
    print("CLUSTER LABELS SUMMARY")
    print("=" * 60)
    print(labels_df.to_string(index=False))

    labeled = attach_labels(df, labels_df)

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    to_csv_frame(labeled).to_csv(out_dir / "posts_with_labels.csv", index=False)
    labels_df.to_csv(out_dir / "cluster_labels.csv", index=False)
    save_output(labeled, str(out_dir / "posts_with_labels.pkl"))

    n_missing = int(labels_df["cluster_label"].isna().sum())
    if n_missing:
        print(f"\nWarning: {n_missing} clusters have no label")
    print(f"\nFiles saved to {out_dir}/")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
