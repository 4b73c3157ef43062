"""Binary storage for purchased labels."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from uuid import uuid4

from litestar_shiptrack.enums import LabelFormat
from litestar_shiptrack.types import StoredObject

logger = logging.getLogger(__name__)

_EXTENSIONS = {"application/pdf": ".pdf"}


def label_content_type(label_format: LabelFormat) -> str:
    if label_format == LabelFormat.PDF:
        return "application/pdf"
    return "application/octet-stream"


class LocalDiskStorage:
    """Writes uploads below ``root`` and serves them from ``base_url``.

    Implements the BinaryStorage protocol.
    """

    def __init__(self, root: Path, base_url: str = "/") -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    async def upload_binary(
        self, prefix: str, data: bytes, content_type: str
    ) -> StoredObject:
        prefix = prefix.strip("/")
        name = f"{uuid4()}{_EXTENSIONS.get(content_type, '.bin')}"
        directory = self._root / prefix
        path = directory / name

        def _write() -> None:
            directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        key = f"{prefix}/{name}"
        logger.debug("Stored %d bytes at %s", len(data), path)
        return StoredObject(key=key, url=f"{self._base_url}/{key}")
