"""
BATCH EMBEDDING PIPELINE
========================

Turns an ordered collection of post texts into embedding vectors, one
request per batch, with checkpoint/resume and retry with backoff.

Record states (the `embedding` column):
- None          not yet attempted
- list[float]   embedded
- ABSENT (NaN)  empty text, or the batch failed after all retries

Batches run strictly in order, one at a time. That is what makes the resume
cursor valid: everything before the last embedded record has been
processed. Tracking completion per record would be needed before batches
could ever run in parallel.

The cursor is not snapped to a batch boundary. If a checkpointed batch ends
with empty-text records, the resumed run starts right after the last
embedded record, so its batches split differently from an uninterrupted run
(possibly one extra request). The final embeddings are identical.

Usage:
    from postclusters import (
        EmbeddingConfig,
        OpenAIEmbedder,
        FileCheckpointStore,
        load_posts,
        run_embedding_pipeline,
    )
"""

import math
import time
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from .config import (
    BATCH_SIZE,
    CHECKPOINT_FREQ,
    MAX_RETRIES,
    RATE_LIMIT_DELAY,
    TEXT_COLUMN,
    CHECKPOINT_FILE,
    OUTPUT_FILE,
)
from .schema import (
    ABSENT,
    ConfigurationError,
    EmbeddingConfig,
    EmbeddingResponseError,
    RunSummary,
    is_absent,
    is_embedded,
    is_pending,
)
from .retry import RetryPolicy, RetryExhaustedError, exponential_backoff
from .checkpoint import FileCheckpointStore
from .embedder import OpenAIEmbedder
from .data import load_posts
from .io import save_output


# =============================================================================
# BATCH / RESUME HELPERS
# =============================================================================

def resume_index(embeddings: Sequence[Any]) -> int:
    """Position one past the last embedded record (0 if none)."""
    last = -1
    for i, value in enumerate(embeddings):
        if is_embedded(value):
            last = i
    return last + 1


def iter_batches(start: int, total: int, batch_size: int) -> Iterator[Tuple[int, int]]:
    """Yield half-open [start, end) ranges covering start..total."""
    for batch_start in range(start, total, batch_size):
        yield batch_start, min(batch_start + batch_size, total)


def is_valid_text(text: Any) -> bool:
    """Non-empty, non-whitespace string."""
    return isinstance(text, str) and text.strip() != ""


def partition_batch(texts: Sequence[Any]) -> Tuple[List[int], List[str]]:
    """
    Split a batch into the texts to send and their positions in the batch.

    Returns:
        (positions, valid_texts): positions index into `texts`
    """
    positions = [i for i, t in enumerate(texts) if is_valid_text(t)]
    return positions, [texts[i] for i in positions]


def should_checkpoint(batch_start: int, batch_end: int, frequency: int, total: int) -> bool:
    """True if the batch crossed a multiple of `frequency` or finished the run."""
    return batch_end == total or (batch_end // frequency) > (batch_start // frequency)


def count_states(embeddings: Sequence[Any]) -> Tuple[int, int, int]:
    """(embedded, absent, pending) counts."""
    embedded = sum(1 for v in embeddings if is_embedded(v))
    absent = sum(1 for v in embeddings if is_absent(v))
    pending = sum(1 for v in embeddings if is_pending(v))
    return embedded, absent, pending


# =============================================================================
# PIPELINE
# =============================================================================

class EmbeddingPipeline:
    """
    Sequential batch embedding with checkpointing.

    Usage:
        pipeline = EmbeddingPipeline(embedder, FileCheckpointStore("ckpt.pkl"))
        df = pipeline.run(posts_df, output_path="posts_with_embeddings.pkl")
        print(pipeline.summary)
    """

    def __init__(
        self,
        embedder,
        store,
        batch_size: int = BATCH_SIZE,
        checkpoint_frequency: int = CHECKPOINT_FREQ,
        max_retries: int = MAX_RETRIES,
        rate_limit_delay: float = RATE_LIMIT_DELAY,
        text_column: str = TEXT_COLUMN,
        backoff: Callable[[int], float] = exponential_backoff,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = True,
    ):
        for name, value in (
            ("batch_size", batch_size),
            ("checkpoint_frequency", checkpoint_frequency),
            ("max_retries", max_retries),
        ):
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if rate_limit_delay < 0:
            raise ConfigurationError(f"rate_limit_delay must be >= 0, got {rate_limit_delay}")

        self.embedder = embedder
        self.store = store
        self.batch_size = batch_size
        self.checkpoint_frequency = checkpoint_frequency
        self.rate_limit_delay = rate_limit_delay
        self.text_column = text_column
        self.sleep = sleep
        self.verbose = verbose
        self.retry = RetryPolicy(
            max_retries=max_retries,
            backoff=backoff,
            sleep=sleep,
            verbose=verbose,
        )
        self.summary = RunSummary(total=0)

    @classmethod
    def from_config(cls, config: EmbeddingConfig, store, embedder=None, **kwargs) -> "EmbeddingPipeline":
        """Build a pipeline (and an OpenAIEmbedder unless given) from an EmbeddingConfig."""
        return cls(
            embedder=embedder or OpenAIEmbedder(config),
            store=store,
            batch_size=config.batch_size,
            checkpoint_frequency=config.checkpoint_frequency,
            max_retries=config.max_retries,
            rate_limit_delay=config.rate_limit_delay,
            **kwargs,
        )

    def _log(self, message: str):
        if self.verbose:
            print(message)

    def _prepare(self, records: pd.DataFrame) -> Tuple[pd.DataFrame, int, bool]:
        """Working DataFrame and resume index, from checkpoint if one exists."""
        checkpoint = self.store.load()
        if checkpoint is not None:
            self._log("Checkpoint found, resuming...")
            df = checkpoint
            if "embedding" not in df.columns:
                df["embedding"] = pd.Series([None] * len(df), index=df.index, dtype=object)
            if len(df) != len(records):
                print(f"Warning: checkpoint has {len(df)} records, input has {len(records)}. "
                      f"Using checkpoint.")
            if self.text_column not in df.columns:
                raise ValueError(
                    f"Column '{self.text_column}' not found in checkpoint. "
                    f"Available: {list(df.columns)}"
                )
            start = resume_index(df["embedding"].tolist())
            self._log(f"Resuming from {start + 1}/{len(df)}")
            return df, start, True

        if self.text_column not in records.columns:
            raise ValueError(
                f"Column '{self.text_column}' not found. Available: {list(records.columns)}"
            )
        df = records.reset_index(drop=True).copy()
        df["embedding"] = pd.Series([None] * len(df), index=df.index, dtype=object)
        return df, 0, False

    def _save_checkpoint(self, df: pd.DataFrame, embeddings: List[Any]):
        df["embedding"] = pd.Series(embeddings, index=df.index, dtype=object)
        self.store.save(df)
        self.summary.checkpoints_saved += 1
        done = sum(1 for v in embeddings if is_embedded(v))
        self._log(f"Checkpoint saved: {done}/{len(embeddings)} completed")

    def _request(self, texts: List[str]) -> List[List[float]]:
        vectors = self.embedder.embed(texts)
        if vectors is None or len(vectors) != len(texts):
            got = 0 if vectors is None else len(vectors)
            raise EmbeddingResponseError(f"Expected {len(texts)} embeddings, got {got}")
        vectors = [list(v) for v in vectors]
        for i, vector in enumerate(vectors):
            if not all(math.isfinite(x) for x in vector):
                raise EmbeddingResponseError(f"Non-finite value in embedding {i}")
        return vectors

    def embed_batch(self, texts: Sequence[Any]) -> Tuple[List[Any], bool]:
        """
        Embed one batch.

        Returns:
            (results, ok): one entry per input text (vector or ABSENT), and
            False if the request failed after all retries.
        """
        results: List[Any] = [ABSENT] * len(texts)
        positions, valid_texts = partition_batch(texts)
        if not valid_texts:
            return results, True

        try:
            vectors = self.retry.call(lambda: self._request(valid_texts))
        except RetryExhaustedError as e:
            print(f"Warning: Batch failed after {e.attempts} attempts: {e.last_error}")
            return results, False
        finally:
            self.summary.api_calls += self.retry.last_attempts

        for pos, vector in zip(positions, vectors):
            results[pos] = vector
        return results, True

    def run(self, records: pd.DataFrame, output_path: Optional[str] = None) -> pd.DataFrame:
        """
        Embed every record that hasn't been processed yet.

        Args:
            records: DataFrame with a text column (ignored if a checkpoint exists)
            output_path: If given, the final DataFrame is pickled here before
                the checkpoint is removed

        Returns:
            DataFrame with an `embedding` entry (vector or ABSENT) for every record
        """
        df, start, resumed = self._prepare(records)
        total = len(df)
        embeddings = df["embedding"].tolist()
        texts = df[self.text_column].tolist()

        self.summary = RunSummary(total=total, start_index=start, resumed=resumed)
        self.retry.last_attempts = 0

        self._log(f"\nProcessing {total - start} embeddings")
        self._log(f"Batch size: {self.batch_size} | Checkpoint every: {self.checkpoint_frequency}\n")

        for batch_start, batch_end in iter_batches(start, total, self.batch_size):
            self._log(f"Batch [{batch_start + 1}-{batch_end}] - Progress: "
                      f"{batch_start / total * 100:.1f}%")

            self.retry.last_attempts = 0
            results, ok = self.embed_batch(texts[batch_start:batch_end])
            embeddings[batch_start:batch_end] = results
            self.summary.batches += 1
            if not ok:
                self.summary.failed_batches += 1
                self.summary.failed_ranges.append((batch_start, batch_end))

            if should_checkpoint(batch_start, batch_end, self.checkpoint_frequency, total):
                self._save_checkpoint(df, embeddings)

            # Rate limiting
            if batch_end < total:
                self.sleep(self.rate_limit_delay)

        df["embedding"] = pd.Series(embeddings, index=df.index, dtype=object)

        if output_path:
            save_output(df, output_path)
        self.store.clear()

        succeeded, failed, pending = count_states(embeddings)
        self.summary.succeeded = succeeded
        self.summary.failed = failed
        self.summary.pending = pending
        self._print_summary(output_path)
        return df

    def _print_summary(self, output_path: Optional[str]):
        s = self.summary
        print()
        print("=" * 50)
        print("COMPLETED")
        print(f"Records attempted: {s.attempted}")
        print(f"Embeddings generated: {s.succeeded}/{s.total}")
        if s.failed > 0:
            print(f"Failed: {s.failed} ({s.failed_batches} batches)")
        if s.pending > 0:
            print(f"Warning: {s.pending} records were never attempted")
        print(f"API calls: {s.api_calls}")
        if output_path:
            print(f"Output saved to: {output_path}")
        print("=" * 50)


# =============================================================================
# ENTRY POINTS
# =============================================================================

def run_embedding_pipeline(
    records: pd.DataFrame,
    embedder,
    store,
    batch_size: int = BATCH_SIZE,
    checkpoint_frequency: int = CHECKPOINT_FREQ,
    max_retries: int = MAX_RETRIES,
    rate_limit_delay: float = RATE_LIMIT_DELAY,
    text_column: str = TEXT_COLUMN,
    output_path: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
    verbose: bool = True,
) -> Tuple[pd.DataFrame, RunSummary]:
    """
    Run the batch embedding pipeline once.

    Args:
        records: DataFrame with a text column
        embedder: Object with embed(texts) -> list of vectors
        store: Checkpoint store (load/save/clear)
        batch_size: Records per request
        checkpoint_frequency: Save a checkpoint each time this many records are crossed
        max_retries: Attempts per batch before marking it absent
        rate_limit_delay: Seconds between batches
        text_column: Column holding the text
        output_path: Optional final artifact path
        sleep: Injectable sleep (tests pass a recorder)
        verbose: Print progress

    Returns:
        (DataFrame with embeddings, RunSummary)
    """
    pipeline = EmbeddingPipeline(
        embedder=embedder,
        store=store,
        batch_size=batch_size,
        checkpoint_frequency=checkpoint_frequency,
        max_retries=max_retries,
        rate_limit_delay=rate_limit_delay,
        text_column=text_column,
        sleep=sleep,
        verbose=verbose,
    )
    df = pipeline.run(records, output_path=output_path)
    return df, pipeline.summary


def generate_embeddings(
    input_csv: str,
    config: EmbeddingConfig,
    output_path: str = OUTPUT_FILE,
    checkpoint_path: str = CHECKPOINT_FILE,
    text_column: str = TEXT_COLUMN,
    sample_size: Optional[int] = None,
    verbose: bool = True,
) -> Tuple[pd.DataFrame, RunSummary]:
    """Load posts from CSV, embed them with OpenAI, write the output artifact."""
    if verbose:
        print("Loading data...")
    posts = load_posts(input_csv, text_column=text_column, sample_size=sample_size)
    if verbose:
        print(f"Loaded {len(posts)} posts for embedding")

    pipeline = EmbeddingPipeline.from_config(
        config,
        store=FileCheckpointStore(checkpoint_path),
        text_column=text_column,
        verbose=verbose,
    )
    df = pipeline.run(posts, output_path=output_path)
    return df, pipeline.summary
