"""
Vector store abstractions and factories.
"""

from freshmarket_assistant.config import Settings, settings
from freshmarket_assistant.vector_store.chroma_store import ChromaVectorStore

DEFAULT_VECTOR_STORE_BACKEND = settings.vector_store_backend


def get_vector_store(config: Settings | None = None):
    """
    Factory to obtain configured VectorStore instance.
    Currently supports only Chroma backend.
    """
    config = config or settings
    backend = config.vector_store_backend.lower()
    if backend == "chroma":
        return ChromaVectorStore(persist_directory=config.vector_store_path, index_name=config.index_name)
    raise ValueError(f"Unsupported vector store backend: {backend}")


__all__ = ["DEFAULT_VECTOR_STORE_BACKEND", "get_vector_store", "ChromaVectorStore"]
