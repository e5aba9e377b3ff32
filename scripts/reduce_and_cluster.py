#!/usr/bin/env python3
"""
Steps 2-3: UMAP reduction (1536D -> 50D) and k-means with k optimization

Input:  posts_with_embeddings.pkl
Output: posts_with_clusters.pkl, posts_with_clusters.csv,
        kmeans_optimization_results.csv, embedding_umap_50d.npy

Usage:
    poetry run python scripts/reduce_and_cluster.py
"""

import argparse
import sys
from pathlib import Path

import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from postclusters import (
    load_output,
    save_output,
    reduce_embeddings,
    evaluate_k_range,
    composite_scores,
    assign_clusters,
    cluster_sizes,
    get_version_info,
    save_manifest,
)
from postclusters.io import to_csv_frame
from postclusters.config import OUTPUT_FILE, UMAP_PARAMS, K_RANGE, RANDOM_SEED


def main():
    parser = argparse.ArgumentParser(description="Reduce embeddings with UMAP and cluster with k-means")
    parser.add_argument("--input", type=str, default=OUTPUT_FILE,
                        help=f"Embedding output pickle (default: {OUTPUT_FILE})")
    parser.add_argument("--output-dir", type=str, default="results",
                        help="Output directory (default: results)")
    parser.add_argument("--k-min", type=int, default=min(K_RANGE))
    parser.add_argument("--k-max", type=int, default=max(K_RANGE))
    parser.add_argument("--k", type=int, default=None,
                        help="Skip the sweep and use this k")
    parser.add_argument("--n-components", type=int, default=UMAP_PARAMS["n_components"])
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)

    args = parser.parse_args()
    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    print("Loading embeddings...")
    df = load_output(args.input)

    reduced, df = reduce_embeddings(df, n_components=args.n_components, random_state=args.seed)
    np.save(out_dir / f"embedding_umap_{args.n_components}d.npy", reduced)

    if args.k is None:
        print(f"\nSearching k in range [{args.k_min}, {args.k_max}]...\n")
        results = evaluate_k_range(reduced, range(args.k_min, args.k_max + 1), random_state=args.seed)
        results = composite_scores(results)
        results.to_csv(out_dir / "kmeans_optimization_results.csv", index=False)

        print("\n" + "=" * 70)
        print("K-MEANS OPTIMIZATION RESULTS")
        print("=" * 70)
        print(results[["k", "silhouette", "davies_bouldin", "bss_tss", "composite_score"]]
              .sort_values("k").to_string(index=False, float_format="%.3f"))

        best = results.iloc[0]
        best_k = int(best["k"])
        print("\nOPTIMAL CONFIGURATION")
        print(f"  Optimal k: {best_k} clusters")
        print(f"  Silhouette: {best['silhouette']:.3f} (>0.3 = good, >0.5 = excellent)")
        print(f"  Davies-Bouldin: {best['davies_bouldin']:.3f} (<1.0 = good separation)")
        print(f"  BSS/TSS: {best['bss_tss'] * 100:.1f}% variance explained")
        print(f"  Composite Score: {best['composite_score']:.4f}")
    else:
        best_k = args.k

    print(f"\nRunning final clustering with k={best_k}...")
    clustered = assign_clusters(df, reduced, best_k, random_state=args.seed)

    print("\nCluster distribution:")
    for row in cluster_sizes(clustered).itertuples(index=False):
        print(f"  Cluster {row.cluster}: {row.n_posts:,} posts ({row.pct:.1f}%)")

    save_output(clustered, str(out_dir / "posts_with_clusters.pkl"))
    to_csv_frame(clustered).to_csv(out_dir / "posts_with_clusters.csv", index=False)
    save_manifest(
        {"step": "reduce_and_cluster", "k": best_k, "n_posts": len(clustered),
         "version": get_version_info()},
        args.output_dir,
        name="clustering_manifest",
    )

    print(f"\nFiles saved to {out_dir}/")
    print("\nNext step: Run scripts/label_clusters.py")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
