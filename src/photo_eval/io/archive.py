"""Best-effort archival of uploaded photos."""

from __future__ import annotations

import json
import logging
import re
import urllib.request
import uuid
from concurrent.futures import Executor, Future, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Protocol

DROPBOX_UPLOAD_URL = "https://content.dropboxapi.com/2/files/upload"

logger = logging.getLogger(__name__)


class Archiver(Protocol):
    def put(self, key: str, data: bytes, mime_type: str) -> None: ...


def sanitize_filename(name: str | None) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", name or "photo")
    return cleaned[:140] or "photo"


def upload_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return re.sub(r"[:.]", "-", stamp)


def build_upload_key(filename: str | None, now: datetime | None = None) -> str:
    return f"uploads/{upload_timestamp(now)}-{uuid.uuid4()}-{sanitize_filename(filename)}"


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


class LocalArchive:
    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def put(self, key: str, data: bytes, mime_type: str) -> None:
        target = (self.root / key).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Archive key escapes archive root: {key}")
        ensure_parent(target)
        target.write_bytes(data)


class DropboxArchive:
    def __init__(self, token: str, base_path: str = "/Apps/AI-Inspector", timeout_seconds: float = 30.0) -> None:
        self._token = token
        self._base_path = base_path.rstrip("/")
        self._timeout = timeout_seconds

    def put(self, key: str, data: bytes, mime_type: str) -> None:
        # keys carry an "uploads/" prefix; Dropbox files sit flat in the folder
        path = f"{self._base_path}/{key.rsplit('/', 1)[-1]}"
        request = urllib.request.Request(
            DROPBOX_UPLOAD_URL,
            data=data,
            method="POST",
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps({"path": path, "mode": "add", "autorename": True, "mute": False}),
            },
        )
        with urllib.request.urlopen(request, timeout=self._timeout) as response:
            response.read()


def start_archival(
    executor: Executor,
    archivers: Iterable[Archiver],
    key: str,
    data: bytes,
    mime_type: str,
) -> list[Future]:
    return [executor.submit(archiver.put, key, data, mime_type) for archiver in archivers]


def join_archival(futures: Iterable[Future]) -> None:
    """Wait for every archival task; failures are logged and dropped."""
    futures = list(futures)
    if not futures:
        return
    wait(futures)
    for future in futures:
        exc = future.exception()
        if exc is not None:
            logger.warning("Photo archival failed: %s", exc)
