#!/usr/bin/env python3
"""
Step 1: Generate embeddings for archived posts (text-embedding-3-small)

Batch processing with checkpointing: kill the process at any point and
rerun the same command to resume.

Usage:
    poetry run python scripts/generate_embeddings.py --data data/search_1.csv
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from postclusters import (
    ConfigurationError,
    EmbeddingConfig,
    generate_embeddings,
    get_version_info,
    save_manifest,
)
from postclusters.config import (
    INPUT_FILE,
    OUTPUT_FILE,
    CHECKPOINT_FILE,
    BATCH_SIZE,
    CHECKPOINT_FREQ,
    MAX_RETRIES,
    RATE_LIMIT_DELAY,
    TEXT_COLUMN,
)


def main():
    parser = argparse.ArgumentParser(description="Generate post embeddings with OpenAI")
    parser.add_argument("--data", type=str, default=INPUT_FILE,
                        help=f"Archive export CSV (default: {INPUT_FILE})")
    parser.add_argument("--output", type=str, default=OUTPUT_FILE,
                        help=f"Output pickle (default: {OUTPUT_FILE})")
    parser.add_argument("--checkpoint", type=str, default=CHECKPOINT_FILE,
                        help=f"Checkpoint pickle (default: {CHECKPOINT_FILE})")
    parser.add_argument("--text-column", type=str, default=TEXT_COLUMN,
                        help=f"Column with post text (default: {TEXT_COLUMN})")
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE,
                        help=f"Texts per API call (default: {BATCH_SIZE})")
    parser.add_argument("--checkpoint-every", type=int, default=CHECKPOINT_FREQ,
                        help=f"Save progress every N records (default: {CHECKPOINT_FREQ})")
    parser.add_argument("--max-retries", type=int, default=MAX_RETRIES,
                        help=f"Attempts per batch (default: {MAX_RETRIES})")
    parser.add_argument("--delay", type=float, default=RATE_LIMIT_DELAY,
                        help=f"Seconds between batches (default: {RATE_LIMIT_DELAY})")
    parser.add_argument("--sample-size", type=int, default=None,
                        help="Only embed a random sample of N posts")
    parser.add_argument("--env", type=str, default=None,
                        help="Path to .env file (default: auto-detect)")
    parser.add_argument("--manifest-dir", type=str, default="results",
                        help="Where to write the run manifest (default: results)")
    parser.add_argument("--quiet", action="store_true", help="Only print warnings and the summary")

    args = parser.parse_args()

    try:
        config = EmbeddingConfig.from_env(
            env_path=args.env,
            batch_size=args.batch_size,
            checkpoint_frequency=args.checkpoint_every,
            max_retries=args.max_retries,
            rate_limit_delay=args.delay,
        )
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return 1

    if not Path(args.data).exists():
        print(f"ERROR: Input not found: {args.data}")
        return 1

    _, summary = generate_embeddings(
        input_csv=args.data,
        config=config,
        output_path=args.output,
        checkpoint_path=args.checkpoint,
        text_column=args.text_column,
        sample_size=args.sample_size,
        verbose=not args.quiet,
    )

    manifest = {
        "step": "generate_embeddings",
        "input": args.data,
        "output": args.output,
        "config": config.describe(),
        "summary": {
            "total": summary.total,
            "succeeded": summary.succeeded,
            "failed": summary.failed,
            "resumed_from": summary.start_index if summary.resumed else None,
            "api_calls": summary.api_calls,
            "failed_ranges": summary.failed_ranges,
        },
        "version": get_version_info(),
    }
    path = save_manifest(manifest, args.manifest_dir, name="embeddings_manifest")
    print(f"Manifest saved to: {path}")
    print("\nNext step: Run scripts/reduce_and_cluster.py")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
