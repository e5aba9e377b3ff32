"""
Embedding client: OpenAIEmbedder.
"""

from typing import List, Optional

import openai
from openai import OpenAI

from .schema import EmbeddingConfig, EmbeddingRequestError, EmbeddingResponseError


class OpenAIEmbedder:
    """
    One request per call, no retries of its own (RetryPolicy owns those).

    Usage:
        config = EmbeddingConfig.from_env()
        embedder = OpenAIEmbedder(config)
        vectors = embedder.embed(["first post", "second post"])
    """

    def __init__(self, config: EmbeddingConfig, client: Optional[OpenAI] = None):
        self.config = config
        self.client = client or OpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
        )

    def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed non-empty texts in one request.

        Returns:
            One vector per input text, in input order.

        Raises:
            EmbeddingRequestError: network error, timeout or non-success status
            EmbeddingResponseError: vector count or length doesn't match
        """
        try:
            response = self.client.embeddings.create(
                model=self.config.model,
                input=texts,
                encoding_format=self.config.encoding_format,
            )
        except openai.APIStatusError as e:
            raise EmbeddingRequestError(f"HTTP {e.status_code}: {e.message}") from e
        except openai.OpenAIError as e:
            raise EmbeddingRequestError(str(e) or type(e).__name__) from e

        data = list(response.data or [])
        if len(data) != len(texts):
            raise EmbeddingResponseError(
                f"Expected {len(texts)} embeddings, got {len(data)}"
            )

        # The service returns an index per item; verify it preserved input order
        indices = [getattr(item, "index", i) for i, item in enumerate(data)]
        if indices != list(range(len(texts))):
            raise EmbeddingResponseError(f"Embeddings returned out of order: {indices[:10]}")

        vectors = [list(item.embedding) for item in data]
        expected_dims = self.config.dimensions
        if expected_dims is not None:
            bad = [i for i, v in enumerate(vectors) if len(v) != expected_dims]
            if bad:
                raise EmbeddingResponseError(
                    f"Expected {expected_dims}-dimensional vectors, "
                    f"got {len(vectors[bad[0]])} at position {bad[0]}"
                )
        return vectors
