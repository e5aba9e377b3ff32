#!/usr/bin/env python3
"""
Minimal smoke test: 3 posts x 1 batch against the live embedding API

Goal: Confirm we get:
- One 1536-dim vector per non-empty post
- ABSENT for the empty post
- No checkpoint left behind
"""

import sys
import tempfile
from pathlib import Path

import pandas as pd

# Add src to path (OK for smoke test; long-term prefer `poetry run`)
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from postclusters import (
    ConfigurationError,
    EmbeddingConfig,
    EmbeddingPipeline,
    FileCheckpointStore,
    is_absent,
    is_embedded,
)


def main():
    print("=" * 60)
    print("MINIMAL SMOKE TEST")
    print("=" * 60)
    print("3 posts (1 empty) x 1 batch\n")

    print("1. Loading config...")
    try:
        config = EmbeddingConfig.from_env(batch_size=10, rate_limit_delay=0.0)
    except ConfigurationError as e:
        print(f"   ⚠ WARNING: {e}")
        print("   (This is OK for CI - tests pass without API keys)")
        return 0  # Exit gracefully, don't fail

    posts = pd.DataFrame({"text": [
        "Lower corporate tax rates will bring investment back.",
        "",
        "New tariffs on steel imports announced today.",
    ]})

    with tempfile.TemporaryDirectory() as tmp:
        store = FileCheckpointStore(str(Path(tmp) / "ckpt.pkl"))
        pipeline = EmbeddingPipeline.from_config(config, store=store)

        print("\n2. Running pipeline...")
        df = pipeline.run(posts, output_path=str(Path(tmp) / "out.pkl"))

        print("\n3. Checking results...")
        ok = True
        for i, value in enumerate(df["embedding"]):
            if i == 1:
                state = "absent" if is_absent(value) else "UNEXPECTED"
                ok &= is_absent(value)
            else:
                state = f"{len(value)} dims" if is_embedded(value) else "MISSING"
                ok &= is_embedded(value) and len(value) == config.dimensions
            print(f"   Post {i + 1}: {state}")

        if store.exists():
            print("   ERROR: checkpoint not removed")
            ok = False

    if not ok:
        print("\n✗ SMOKE TEST FAILED")
        return 1
    print("\n✓ SMOKE TEST COMPLETE")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
