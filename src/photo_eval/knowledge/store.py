"""Reference-knowledge loading with a fetch-once cache.

Every configured source is fetched at most once per ``KnowledgeStore``.
Text is remembered as-is; a source that failed, came back empty, or looked
binary is remembered as known-empty and skipped on later loads. The store is
created once per process, so its cache lives as long as the service.
"""

from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Callable, Iterable

Fetcher = Callable[[str], "bytes | None"]

BINARY_SAMPLE_SIZE = 4096
BINARY_THRESHOLD = 0.2
DEFAULT_MAX_CHARS = 12000

_KNOWN_EMPTY = object()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnowledgeDocument:
    label: str
    text: str


@dataclass(frozen=True)
class KnowledgeBundle:
    text: str
    sources: tuple[str, ...]


def is_probably_binary(payload: bytes) -> bool:
    if not payload:
        return False
    sample = payload[:BINARY_SAMPLE_SIZE]
    suspicious = 0
    for byte in sample:
        if byte == 0:
            suspicious += 1
        elif (byte < 7 or byte > 127) and not 9 <= byte <= 13:
            suspicious += 1
    return suspicious / len(sample) > BINARY_THRESHOLD


def describe_source(source: str) -> str:
    if not source:
        return "Dropbox source"
    if source.startswith("/"):
        return source
    try:
        parts = urllib.parse.urlsplit(source)
    except ValueError:
        return source
    segments = [segment for segment in parts.path.split("/") if segment]
    if segments:
        return urllib.parse.unquote(segments[-1])
    return parts.hostname or source


class KnowledgeStore:
    def __init__(
        self,
        path_fetcher: Fetcher,
        url_fetcher: Fetcher,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        self._path_fetcher = path_fetcher
        self._url_fetcher = url_fetcher
        self._max_chars = max_chars
        self._cache: dict[str, object] = {}

    def _fetch_text(self, source: str) -> str | None:
        fetcher = self._path_fetcher if source.startswith("/") else self._url_fetcher
        payload = fetcher(source)
        if payload is None:
            return None
        if is_probably_binary(payload):
            logger.warning("Skipping knowledge source %s: content looks binary", source)
            return None
        text = payload.decode("utf-8", errors="replace")
        return text if text.strip() else None

    def document(self, source: str) -> KnowledgeDocument | None:
        cached = self._cache.get(source)
        if cached is _KNOWN_EMPTY:
            return None
        if cached is None:
            try:
                text = self._fetch_text(source)
            except Exception as exc:  # noqa: BLE001 - advisory content only
                logger.warning("Knowledge source %s failed: %s", source, exc)
                text = None
            self._cache[source] = text if text is not None else _KNOWN_EMPTY
            if text is None:
                return None
            cached = text
        return KnowledgeDocument(label=describe_source(source), text=str(cached))

    def load(self, sources: Iterable[str]) -> KnowledgeBundle:
        docs = [doc for doc in (self.document(source) for source in sources) if doc]

        used = 0
        parts: list[str] = []
        for doc in docs:
            remaining = self._max_chars - used
            if remaining <= 0:
                break
            snippet = doc.text[:remaining]
            used += len(snippet)
            parts.append(f"From {doc.label}:\n{snippet}")

        if docs:
            logger.info("Loaded %d knowledge block(s), %d chars", len(parts), used)
        return KnowledgeBundle(text="\n\n".join(parts), sources=tuple(doc.label for doc in docs))
