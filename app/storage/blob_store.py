"""
app/storage/blob_store.py

Blob store contract and the local filesystem backend.

Keys follow `<kind>/<website_id>/<hash>/<timestamp>.<ext>`: raw SERP
responses are grouped by query, HTML by page URL and sitemaps by owner.
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlparse

from app.jobs.errors import ExternalServiceError

_SERVICE = "blob_store"


@dataclass(frozen=True)
class StoredBlob:
    url: str
    pathname: str


class BlobStore(Protocol):
    def store(self, key: str, data: bytes | str, *, content_type: str) -> StoredBlob: ...

    def load(self, url: str) -> bytes: ...


def _short_hash(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()[:16]


def _timestamp(moment: datetime) -> str:
    return moment.strftime("%Y%m%dT%H%M%S%fZ")


def serp_key(website_id: uuid.UUID, query: str, now: datetime) -> str:
    return f"serp/{website_id}/{_short_hash(query.strip().lower())}/{_timestamp(now)}.json"


def html_key(website_id: uuid.UUID, url: str, now: datetime) -> str:
    return f"html/{website_id}/{_short_hash(url)}/{_timestamp(now)}.html"


def sitemap_key(
    website_id: uuid.UUID,
    now: datetime,
    competitor_id: uuid.UUID | None = None,
) -> str:
    owner = f"competitor-{competitor_id}" if competitor_id is not None else "self"
    return f"sitemap/{website_id}/{owner}/{_timestamp(now)}.json"


def _validate_key(key: str) -> PurePosixPath:
    relative = PurePosixPath(key)
    if not key or relative.is_absolute() or ".." in relative.parts:
        raise ExternalServiceError(f"Invalid blob key '{key}'.", service=_SERVICE)
    return relative


class LocalBlobStore:
    """
    Filesystem blob store. Each blob is written to a temporary file first and
    renamed into place, so readers never see a partial write.
    """

    def __init__(self, root_dir: str | Path = "storage/blobs") -> None:
        self._root_dir = Path(root_dir).resolve()

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def store(self, key: str, data: bytes | str, *, content_type: str) -> StoredBlob:
        relative = _validate_key(key)
        content = data.encode("utf-8") if isinstance(data, str) else data
        absolute_path = self._root_dir.joinpath(*relative.parts)
        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as handle:
                handle.write(content)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise ExternalServiceError(
                f"Failed to write blob '{key}' ({content_type}).",
                service=_SERVICE,
            ) from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        return StoredBlob(url=absolute_path.as_uri(), pathname=relative.as_posix())

    def load(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        else:
            path = self._root_dir.joinpath(*_validate_key(url).parts)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ExternalServiceError(f"Failed to read blob '{url}'.", service=_SERVICE) from exc
