"""Fetchers that pull reference documents from Dropbox or plain URLs."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request

DROPBOX_DOWNLOAD_URL = "https://content.dropboxapi.com/2/files/download"

logger = logging.getLogger(__name__)


def normalize_dropbox_share_url(url: str) -> str:
    """Turn a Dropbox share link into a direct download link."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return url
    if "dropbox.com" not in (parts.hostname or ""):
        return url
    query = [
        (key, value)
        for key, value in urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
        if key not in ("dl", "raw")
    ]
    query.append(("dl", "1"))
    return urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(query)))


def _read(request: urllib.request.Request | str, timeout: float) -> bytes | None:
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return response.read()
    except urllib.error.HTTPError as exc:
        logger.debug("Knowledge fetch answered %s", exc.code)
        return None


class DropboxPathFetcher:
    """Downloads ``/``-prefixed Dropbox paths through the files API."""

    def __init__(self, token: str | None, timeout_seconds: float = 30.0) -> None:
        self._token = token
        self._timeout = timeout_seconds

    def __call__(self, path: str) -> bytes | None:
        if not self._token:
            return None
        request = urllib.request.Request(
            DROPBOX_DOWNLOAD_URL,
            method="POST",
            headers={
                "Authorization": f"Bearer {self._token}",
                "Dropbox-API-Arg": json.dumps({"path": path}),
            },
        )
        return _read(request, self._timeout)


class UrlFetcher:
    def __init__(self, timeout_seconds: float = 30.0) -> None:
        self._timeout = timeout_seconds

    def __call__(self, url: str) -> bytes | None:
        return _read(normalize_dropbox_share_url(url), self._timeout)
