from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

_SUFFIX = ".json"
# keeps "<name>.json.tmp" under NAME_MAX
_MAX_NAME_BYTES = 200


class NotesStore:
    """Key/value store of JSON documents, one file per key under ``directory``.

    Each file holds ``{"key": ..., "value": ...}``. Keys whose quoted form is
    too long for a file name are stored under their sha256 digest. Unreadable
    or corrupt documents read as missing.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        name = quote(key, safe="")
        if len(name.encode()) > _MAX_NAME_BYTES:
            name = "sha256-" + hashlib.sha256(key.encode()).hexdigest()
        return self.directory / f"{name}{_SUFFIX}"

    async def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except OSError:
            logger.warning("Cannot read %s", path, exc_info=True)
            return None
        try:
            document = json.loads(raw)
        except ValueError:
            logger.warning("Corrupt document %s, ignoring it", path)
            return None
        if not isinstance(document, dict) or "key" not in document:
            logger.warning("Document %s has no key, ignoring it", path)
            return None
        return document

    async def get(self, key: str, default: Any = None) -> Any:
        document = await self._read(self._path(key))
        if document is None or document["key"] != key:
            return default
        return document.get("value", default)

    async def set(self, key: str, value: Any) -> None:
        await aiofiles.os.makedirs(self.directory, exist_ok=True)
        path = self._path(key)
        tmp = path.with_name(path.name + ".tmp")
        async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
            await f.write(json.dumps({"key": key, "value": value}, ensure_ascii=False))
        await aiofiles.os.replace(tmp, path)

    async def delete(self, key: str) -> None:
        try:
            await aiofiles.os.remove(self._path(key))
        except FileNotFoundError:
            pass

    async def keys(self, prefix: str = "") -> list[str]:
        if not await aiofiles.os.path.isdir(self.directory):
            return []
        found = []
        for name in await aiofiles.os.listdir(self.directory):
            if not name.endswith(_SUFFIX):
                continue
            document = await self._read(self.directory / name)
            if document is not None and str(document["key"]).startswith(prefix):
                found.append(document["key"])
        return sorted(found)
