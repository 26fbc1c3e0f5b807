"""Media store — image bytes on local disk.

Learn: Files live flat in one upload directory, named
"<epoch-millis>-<sanitized original name>". The timestamp keeps names
distinct; files are opened with exclusive-create ("xb") so an existing
file is never overwritten, and a collision just bumps the timestamp.

Methods here are synchronous and blocking. The service layer calls them
through asyncio.to_thread so the event loop isn't held up by disk IO.

Replacing a file writes the new one before removing the old one. A
crash in between leaves an extra file on disk (orphaned file), never a
record pointing at nothing.
"""

import re
import time
from pathlib import Path

import structlog

from dogapi.config import settings

logger = structlog.get_logger()

_UNSAFE = re.compile(r"[^A-Za-z0-9.-]")
_MAX_ATTEMPTS = 1000
# Leaves room for the "<millis>-" prefix inside the usual 255-byte name limit
MAX_NAME_LENGTH = 200
# Longer "extensions" are just dots in the middle of a name
_MAX_EXT_LENGTH = 16


def sanitize_filename(name: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Replace every character outside [A-Za-z0-9.-] with an underscore.

    Over-long names are cut from the end of the stem so the extension
    survives. The result is ASCII, so its length is its size in bytes.
    """
    safe = _UNSAFE.sub("_", name or "") or "upload"
    if len(safe) <= max_length:
        return safe
    stem, dot, ext = safe.rpartition(".")
    if not dot or not stem or len(ext) > _MAX_EXT_LENGTH:
        return safe[:max_length]
    return stem[: max_length - len(ext) - 1] + "." + ext


class MediaStore:
    """Reads and writes uploaded images under a single root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def resolve(self, path: str | Path) -> Path:
        return Path(path).resolve()

    def exists(self, path: str | Path) -> bool:
        return Path(path).is_file()

    def store(self, data: bytes, suggested_name: str) -> str:
        """Write bytes to a fresh file and return its path."""
        self.ensure_root()
        safe = sanitize_filename(suggested_name)
        stamp = time.time_ns() // 1_000_000

        for _ in range(_MAX_ATTEMPTS):
            target = self.root / f"{stamp}-{safe}"
            try:
                with open(target, "xb") as fh:
                    fh.write(data)
            except FileExistsError:
                stamp += 1
                continue
            logger.debug("media.stored", path=str(target), size=len(data))
            return str(target)

        raise FileExistsError(f"could not allocate a unique name for {safe}")

    def replace(self, old_path: str | Path, data: bytes, suggested_name: str) -> str:
        """Store the new file, then drop the old one (missing old file is fine)."""
        new_path = self.store(data, suggested_name)
        self.delete(old_path)
        return new_path

    def delete(self, path: str | Path, missing_ok: bool = True) -> bool:
        """Remove a file. Returns False if it was already gone."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            if not missing_ok:
                raise
            logger.warning("media.file_missing", path=str(path))
            return False
        return True

    def read(self, path: str | Path) -> bytes:
        """Whole-file read for in-process callers.

        The HTTP GET route streams from resolve() through FileResponse
        instead, so large images never sit in memory.
        """
        return Path(path).read_bytes()


def get_media_store() -> MediaStore:
    """FastAPI dependency — the media store rooted at settings.upload_dir."""
    return MediaStore(settings.upload_dir)
