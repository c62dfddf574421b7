"""Configuration loading for the photo evaluation service."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from dotenv import load_dotenv

META_MODEL = "@cf/meta/llama-3.2-11b-vision-instruct"
LLAVA_MODEL = "@cf/llava-hf/llava-1.5-7b-hf"

# (primary, fallback) per provider
DEFAULT_MODELS = {
    "openai": (META_MODEL, LLAVA_MODEL),
    "google": ("gemini-2.0-flash", "gemini-1.5-flash"),
}

DEFAULT_ALLOWED_ORIGINS = ("https://homehealthinspections.com", "http://localhost:8787")


@dataclass(frozen=True)
class AppConfig:
    llm_provider: str
    openai_api_key: str | None
    openai_base_url: str | None
    google_api_key: str | None
    primary_model: str
    fallback_model: str
    default_model: str
    schema_models: tuple[str, ...]
    warm_up_models: tuple[str, ...]
    max_output_tokens: int = 800
    temperature: float = 0.2
    knowledge_sources: tuple[str, ...] = ()
    knowledge_max_chars: int = 12000
    dropbox_token: str | None = None
    dropbox_upload_path: str = "/Apps/AI-Inspector"
    archive_dir: str | None = None
    json_token: str | None = None
    allowed_origins: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    max_image_bytes: int = 12 * 1024 * 1024
    request_timeout_seconds: float = 30.0
    log_level: str = "INFO"
    log_file: str | None = None


def parse_knowledge_sources(raw: str | None) -> tuple[str, ...]:
    """Accept a JSON array, a JSON string, or a bare path/URL."""
    if not raw or not raw.strip():
        return ()
    try:
        parsed = json.loads(raw)
    except ValueError:
        return (raw.strip(),)
    if isinstance(parsed, list):
        return tuple(str(item) for item in parsed if item)
    if isinstance(parsed, str) and parsed:
        return (parsed,)
    return ()


def _split_list(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def load_config() -> AppConfig:
    # override=True ensures the .env file takes precedence over stale shell variables
    load_dotenv(override=True)

    provider = os.getenv("LLM_PROVIDER", "openai").lower()
    if provider not in DEFAULT_MODELS:
        raise ValueError(f"Unsupported LLM_PROVIDER '{provider}' (expected 'openai' or 'google').")

    if provider == "google":
        if not os.getenv("GOOGLE_API_KEY"):
            raise ValueError("LLM_PROVIDER is 'google' but GOOGLE_API_KEY is missing.")
    elif provider == "openai":
        if not os.getenv("OPENAI_API_KEY"):
            raise ValueError("LLM_PROVIDER is 'openai' but OPENAI_API_KEY is missing.")

    default_primary, default_fallback = DEFAULT_MODELS[provider]
    primary_model = os.getenv("PRIMARY_MODEL", default_primary)
    fallback_model = os.getenv("FALLBACK_MODEL", default_fallback)

    knowledge_raw = (
        os.getenv("KNOWLEDGE_SOURCES") or os.getenv("KNOWLEDGE_DOCS") or os.getenv("KNOWLEDGE_PATHS")
    )

    return AppConfig(
        llm_provider=provider,
        openai_api_key=_optional("OPENAI_API_KEY"),
        openai_base_url=_optional("OPENAI_BASE_URL"),
        google_api_key=_optional("GOOGLE_API_KEY"),
        primary_model=primary_model,
        fallback_model=fallback_model,
        default_model=os.getenv("MODEL") or primary_model,
        schema_models=_split_list(os.getenv("SCHEMA_MODELS")) or (primary_model,),
        warm_up_models=_split_list(os.getenv("WARM_UP_MODELS")) or (primary_model,),
        max_output_tokens=int(os.getenv("MAX_OUTPUT_TOKENS", "800")),
        temperature=float(os.getenv("TEMPERATURE", "0.2")),
        knowledge_sources=parse_knowledge_sources(knowledge_raw),
        knowledge_max_chars=int(os.getenv("KNOWLEDGE_MAX_CHARS", "12000")),
        dropbox_token=_optional("DROPBOX_TOKEN"),
        dropbox_upload_path=os.getenv("DROPBOX_UPLOAD_PATH", "/Apps/AI-Inspector"),
        archive_dir=_optional("PHOTO_ARCHIVE_DIR"),
        json_token=_optional("JSON_TOKEN"),
        allowed_origins=_split_list(os.getenv("ALLOWED_ORIGINS")) or DEFAULT_ALLOWED_ORIGINS,
        max_image_bytes=int(os.getenv("MAX_IMAGE_BYTES", str(12 * 1024 * 1024))),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=_optional("LOG_FILE"),
    )
