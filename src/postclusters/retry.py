"""
Retry policy with exponential backoff: RetryPolicy, exponential_backoff().
"""

import time
from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar

from .schema import EmbeddingRequestError

T = TypeVar("T")


def exponential_backoff(attempt: int) -> float:
    """Wait before the next try after failed attempt N (1-based): 1, 2, 4, 8 ..."""
    return float(2 ** (attempt - 1))


class RetryExhaustedError(Exception):
    """All attempts failed. Carries the attempt count and the last error."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass
class RetryPolicy:
    """
    Call a function up to `max_retries` times, sleeping `backoff(attempt)`
    between failed attempts. No wait follows the final attempt.

    Usage:
        policy = RetryPolicy(max_retries=5)
        vectors = policy.call(lambda: embedder.embed(texts))
    """
    max_retries: int = 5
    backoff: Callable[[int], float] = exponential_backoff
    sleep: Callable[[float], None] = time.sleep
    retry_on: Tuple[Type[BaseException], ...] = (EmbeddingRequestError,)
    verbose: bool = True

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        self.last_attempts = 0

    def call(self, fn: Callable[[], T]) -> T:
        """
        Run `fn` until it succeeds or attempts run out.

        Returns:
            Whatever `fn` returns on the first successful attempt.

        Raises:
            RetryExhaustedError: every attempt raised one of `retry_on`.
            Any other exception from `fn` propagates immediately.
        """
        last_error = None
        for attempt in range(1, self.max_retries + 1):
            self.last_attempts = attempt
            try:
                return fn()
            except self.retry_on as e:
                last_error = e
                if self.verbose:
                    print(f"  Attempt {attempt} failed: {e}")

            if attempt < self.max_retries:
                wait_time = self.backoff(attempt)
                if self.verbose:
                    print(f"  Waiting {wait_time:g} seconds before retry...")
                self.sleep(wait_time)

        raise RetryExhaustedError(self.max_retries, last_error)
