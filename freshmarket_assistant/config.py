"""
Application configuration loaded from environment variables.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(default=None, alias="OPENAI_BASE_URL")

    llm_model_name: str = Field(default="gpt-4o-mini", alias="LLM_MODEL_NAME")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0, alias="LLM_TEMPERATURE")
    llm_timeout_sec: float = Field(default=60.0, gt=0, alias="LLM_TIMEOUT_SEC")

    embedding_backend: Literal["openai", "local"] = Field(default="openai", alias="EMBEDDING_BACKEND")
    embedding_model_name: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL_NAME")
    local_embedding_model: str = Field(default="BAAI/bge-m3", alias="LOCAL_EMBEDDING_MODEL")
    embedding_timeout_sec: float = Field(default=30.0, gt=0, alias="EMBEDDING_TIMEOUT_SEC")
    embedding_load_timeout_sec: float = Field(default=600.0, gt=0, alias="EMBEDDING_LOAD_TIMEOUT_SEC")
    embed_batch_size: int = Field(default=64, gt=0, alias="EMBED_BATCH_SIZE")

    vector_store_backend: str = Field(default="chroma", alias="VECTOR_STORE_BACKEND")
    vector_store_path: str = Field(default="./data/vector_store", alias="VECTOR_STORE_PATH")
    index_name: str = Field(default="products", alias="INDEX_NAME")

    catalog_path: str = Field(default="./data/catalog.json", alias="CATALOG_PATH")
    default_category: str = Field(default="Boshqa", alias="DEFAULT_CATEGORY")

    retrieval_top_k: int = Field(default=3, gt=0, alias="RETRIEVAL_TOP_K")
    max_history_turns: int = Field(default=20, gt=0, alias="MAX_HISTORY_TURNS")
    max_history_chars: int = Field(default=8000, gt=0, alias="MAX_HISTORY_CHARS")
    quantity_followup_retrieval: bool = Field(default=True, alias="QUANTITY_FOLLOWUP_RETRIEVAL")

    admin_token: SecretStr | None = Field(default=None, alias="ADMIN_TOKEN")

    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


settings = Settings()


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure base logging for the app.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    return logging.getLogger("freshmarket_assistant")


def public_settings(config: Settings | None = None) -> Dict[str, Any]:
    """
    Return settings without secrets for safe logging/inspection.
    """
    return (config or settings).model_dump(
        exclude={"openai_api_key", "admin_token"},
        exclude_none=True,
    )


__all__ = ["Settings", "settings", "setup_logging", "public_settings"]
