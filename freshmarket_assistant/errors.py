"""
Error taxonomy of the chat assistant core.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple


class AssistantError(Exception):
    """Base class for all assistant errors."""


class EmbeddingUnavailable(AssistantError):
    """Embedding model failed to load or to embed the given input."""


class IndexAbsent(AssistantError):
    """The product vector index has never been built."""


class CatalogUnavailable(AssistantError):
    """The catalog snapshot could not be read."""


class GenerationBackendError(AssistantError):
    """The text-generation backend failed before producing any output."""


class GenerationStreamInterrupted(AssistantError):
    """The text-generation stream ended abnormally after partial output."""


class IndexBuildPartialFailure(AssistantError):
    """Some catalog records were skipped during an index rebuild."""

    def __init__(self, skipped: Sequence[Tuple[str, str]]) -> None:
        self.skipped: List[Tuple[str, str]] = list(skipped)
        super().__init__(f"{len(self.skipped)} catalog record(s) skipped during index build")


__all__ = [
    "AssistantError",
    "EmbeddingUnavailable",
    "IndexAbsent",
    "CatalogUnavailable",
    "GenerationBackendError",
    "GenerationStreamInterrupted",
    "IndexBuildPartialFailure",
]
