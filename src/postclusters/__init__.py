"""
Postclusters: Replication Pipeline for Policy Post Clusters

Embeds archived social media posts, reduces and clusters the embeddings,
and labels the clusters with a chat model.
"""

__version__ = "1.0.0"

from .config import get_version_info, EMBEDDING_MODEL, LABEL_MODEL
from .schema import (
    ABSENT,
    ConfigurationError,
    EmbeddingConfig,
    EmbeddingRequestError,
    EmbeddingResponseError,
    RunSummary,
    is_absent,
    is_embedded,
)
from .retry import RetryPolicy, RetryExhaustedError, exponential_backoff
from .checkpoint import FileCheckpointStore, MemoryCheckpointStore
from .embedder import OpenAIEmbedder
from .data import load_posts
from .io import save_output, load_output, save_results, save_manifest
from .pipeline import EmbeddingPipeline, run_embedding_pipeline, generate_embeddings
from .reduce import embedding_matrix, reduce_embeddings
from .cluster import evaluate_k_range, composite_scores, assign_clusters, cluster_sizes
from .labeler import ClusterLabeler, label_clusters, attach_labels

__all__ = [
    "get_version_info",
    "EMBEDDING_MODEL",
    "LABEL_MODEL",
    "ABSENT",
    "ConfigurationError",
    "EmbeddingConfig",
    "EmbeddingRequestError",
    "EmbeddingResponseError",
    "RunSummary",
    "is_absent",
    "is_embedded",
    "RetryPolicy",
    "RetryExhaustedError",
    "exponential_backoff",
    "FileCheckpointStore",
    "MemoryCheckpointStore",
    "OpenAIEmbedder",
    "load_posts",
    "save_output",
    "load_output",
    "save_results",
    "save_manifest",
    "EmbeddingPipeline",
    "run_embedding_pipeline",
    "generate_embeddings",
    "embedding_matrix",
    "reduce_embeddings",
    "evaluate_k_range",
    "composite_scores",
    "assign_clusters",
    "cluster_sizes",
    "ClusterLabeler",
    "label_clusters",
    "attach_labels",
]
