from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath

from dtfprint.config import settings

logger = logging.getLogger(__name__)

_SAFE_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")


def _safe_segment(segment: str) -> str:
    cleaned = _SAFE_NAME_PATTERN.sub("_", segment).strip("._")
    return cleaned[:120] or "file"


def _is_under_root(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


class LocalBlobStore:
    """Filesystem-backed blob store.

    Names may contain ``/`` separated folders (``dtf/<id>-final.png``); each
    segment is sanitized and the resolved path must stay under ``root``.
    """

    def __init__(self, root: str | Path | None = None, *, public_base_url: str | None = None) -> None:
        self._root = Path(root or settings.storage_root).resolve()
        base_url = public_base_url if public_base_url is not None else settings.storage_public_base_url
        self._public_base_url = base_url.rstrip("/") if base_url else None

    def resolve(self, name: str) -> Path:
        parts = [p for p in PurePosixPath(name.replace("\\", "/")).parts if p not in ("", "/")]
        if not parts or any(p == ".." for p in parts):
            raise ValueError(f"invalid blob name: {name!r}")
        destination = self._root.joinpath(*(_safe_segment(p) for p in parts)).resolve()
        if not _is_under_root(destination, self._root):
            raise ValueError(f"blob name escapes storage root: {name!r}")
        return destination

    def put(self, name: str, data: bytes, content_type: str) -> str:
        destination = self.resolve(name)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
        logger.info("stored %s (%s, %d bytes)", destination, content_type, len(data))

        if self._public_base_url:
            return f"{self._public_base_url}/{destination.relative_to(self._root).as_posix()}"
        return destination.as_uri()
