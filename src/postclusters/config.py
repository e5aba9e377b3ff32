"""
Configuration: models, processing defaults, file names, frozen versions.

All models, prompts and clustering parameters are FROZEN for the replication.
"""

import json
import hashlib

# =============================================================================
# MODELS (FROZEN - v1.0)
# =============================================================================

EMBEDDING_MODEL = {
    "name": "text-embedding-3-small",
    "provider": "OpenAI",
    "dimensions": 1536,
    "encoding_format": "float",
    "pricing": {"input_per_mtok": 0.02},
}

LABEL_MODEL = {
    "name": "gpt-4o",
    "provider": "OpenAI",
    "pricing": {"input_per_mtok": 2.50, "output_per_mtok": 10.00},
    "params": {
        "temperature": 0.7,
        "max_tokens": 50,
    },
}

MODEL_VERSION = "1.0"

# =============================================================================
# EMBEDDING PIPELINE DEFAULTS
# =============================================================================

BATCH_SIZE = 100         # Embeddings per API call (max 2048 for this model)
CHECKPOINT_FREQ = 500    # Save progress every N records
MAX_RETRIES = 5          # Attempts per batch before degrading to absent
RATE_LIMIT_DELAY = 1.0   # Seconds between consecutive batches
REQUEST_TIMEOUT = 120.0  # Seconds per embedding request

TEXT_COLUMN = "text"

INPUT_FILE = "search_1.csv"
CHECKPOINT_FILE = "embedding_checkpoint.pkl"
OUTPUT_FILE = "posts_with_embeddings.pkl"

# =============================================================================
# UMAP + K-MEANS (FROZEN - v1.0)
# =============================================================================

RANDOM_SEED = 42

UMAP_PARAMS = {
    "n_neighbors": 30,    # Larger = more global structure
    "min_dist": 0.1,
    "n_components": 50,   # Output dimensions for clustering
    "metric": "cosine",
}

K_RANGE = range(4, 16)
N_INIT = 25
MAX_ITER = 100
FINAL_N_INIT = 50
FINAL_MAX_ITER = 200
METRIC_SAMPLE_SIZE = 5000  # Silhouette / CH are computed on a sample above this

# Composite score weights (sum to 1.0)
WEIGHTS = {
    "silhouette": 0.35,
    "davies_bouldin": 0.25,
    "calinski_harabasz": 0.20,
    "bss_tss": 0.20,
}

# =============================================================================
# LABELING PROMPT (FROZEN - v1.0)
# =============================================================================

LABEL_PROMPT = """You are analyzing social media posts grouped into Cluster {cluster_id}.
Your task is to assign a short, descriptive label (max 5 words) that summarizes
the main theme or topic of this cluster.

Guidelines:
- Be specific and concrete (e.g., 'Tax Policy Advocacy', 'Corporate Tax News')
- Avoid generic terms like 'discussion' or 'posts'
- Focus on the substantive topic, not the format

Here are sample posts from this cluster:

---
{samples}
---

Return ONLY the label, without quotes or explanation."""

SAMPLES_PER_CLUSTER = 30
LABEL_RATE_LIMIT_DELAY = 3.0

PROMPT_VERSION = "1.0"
PROMPT_HASH = hashlib.md5(LABEL_PROMPT.encode()).hexdigest()[:8]
PARAMS_HASH = hashlib.md5(
    json.dumps({"umap": UMAP_PARAMS, "weights": WEIGHTS}, sort_keys=True).encode()
).hexdigest()[:8]

# =============================================================================
# VERSION INFO
# =============================================================================

def get_version_info():
    """Return version information for reproducibility."""
    return {
        "pipeline_version": "1.0",
        "prompt_version": PROMPT_VERSION,
        "prompt_hash": PROMPT_HASH,
        "params_hash": PARAMS_HASH,
        "model_version": MODEL_VERSION,
        "models": {
            "embedding": EMBEDDING_MODEL["name"],
            "labeling": LABEL_MODEL["name"],
        },
        "embedding": {
            "dimensions": EMBEDDING_MODEL["dimensions"],
            "batch_size": BATCH_SIZE,
            "max_retries": MAX_RETRIES,
        },
        "umap_params": UMAP_PARAMS,
        "kmeans": {
            "k_range": [min(K_RANGE), max(K_RANGE)],
            "n_init": N_INIT,
            "final_n_init": FINAL_N_INIT,
            "weights": WEIGHTS,
        },
        "random_seed": RANDOM_SEED,
        "frozen_date": "2025-03-01"
    }
