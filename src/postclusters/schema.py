"""
Data structures: EmbeddingConfig, RunSummary, errors, absent-value marker.
"""

import os
import math
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

import numpy as np
from dotenv import load_dotenv

from .config import (
    EMBEDDING_MODEL,
    BATCH_SIZE,
    CHECKPOINT_FREQ,
    MAX_RETRIES,
    RATE_LIMIT_DELAY,
    REQUEST_TIMEOUT,
)

# Explicit "no embedding could be produced" marker. None means not yet attempted.
ABSENT = np.nan


class ConfigurationError(ValueError):
    """Missing credential or invalid parameter; raised before any work starts."""


class EmbeddingRequestError(Exception):
    """Transient failure of one embedding request (network, status, timeout)."""


class EmbeddingResponseError(EmbeddingRequestError):
    """Response did not match the request (vector count or length)."""


def is_pending(value: Any) -> bool:
    """True if the record has not been attempted yet."""
    return value is None


def is_absent(value: Any) -> bool:
    """True for the absent-value marker or a vector made only of NaN."""
    if value is None:
        return False
    if isinstance(value, float):
        return math.isnan(value)
    values = list(value)
    return len(values) == 0 or all(isinstance(v, float) and math.isnan(v) for v in values)


def is_embedded(value: Any) -> bool:
    """True if the record holds a usable embedding vector."""
    return value is not None and not is_absent(value)


def load_env(env_path: Optional[str] = None):
    """Load environment variables from a .env file."""
    if env_path:
        load_dotenv(Path(env_path))
        return
    # Try common locations (no hardcoded user paths)
    for path in [
        Path(__file__).parent.parent.parent / ".env",
        Path.cwd() / ".env"
    ]:
        if path.exists():
            load_dotenv(path)
            break


@dataclass
class EmbeddingConfig:
    """Configuration for one embedding run. Validated on construction."""
    api_key: str
    model: str = EMBEDDING_MODEL["name"]
    dimensions: Optional[int] = EMBEDDING_MODEL["dimensions"]  # None = don't check vector length
    encoding_format: str = EMBEDDING_MODEL["encoding_format"]
    batch_size: int = BATCH_SIZE
    checkpoint_frequency: int = CHECKPOINT_FREQ
    max_retries: int = MAX_RETRIES
    rate_limit_delay: float = RATE_LIMIT_DELAY
    timeout: float = REQUEST_TIMEOUT
    base_url: Optional[str] = None

    def __post_init__(self):
        if not self.api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY not set. Export it or add it to a .env file."
            )
        if not self.model:
            raise ConfigurationError("Embedding model name must not be empty")
        for name in ("batch_size", "checkpoint_frequency", "max_retries"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.dimensions is not None and self.dimensions < 1:
            raise ConfigurationError(f"dimensions must be positive, got {self.dimensions}")
        if self.rate_limit_delay < 0 or self.timeout <= 0:
            raise ConfigurationError("rate_limit_delay must be >= 0 and timeout > 0")

    @classmethod
    def from_env(cls, env_path: Optional[str] = None, **overrides) -> "EmbeddingConfig":
        """Build config from OPENAI_API_KEY (environment or .env) plus overrides."""
        load_env(env_path)
        api_key = overrides.pop("api_key", None) or os.environ.get("OPENAI_API_KEY", "")
        return cls(api_key=api_key, **overrides)

    def describe(self) -> Dict[str, Any]:
        """Config without the secret, for logs and manifests."""
        info = asdict(self)
        info.pop("api_key")
        return info


@dataclass
class RunSummary:
    """Counters for one pipeline run."""
    total: int
    start_index: int = 0
    resumed: bool = False
    succeeded: int = 0
    failed: int = 0
    pending: int = 0
    batches: int = 0
    failed_batches: int = 0
    api_calls: int = 0
    checkpoints_saved: int = 0
    failed_ranges: list = field(default_factory=list)  # [(start, end), ...] of degraded batches

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed
