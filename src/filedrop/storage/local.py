"""Local file access for uploads."""

import asyncio
import logging
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from filedrop.upload.exceptions import LocalFileReadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB


def is_uri(local_ref: str) -> bool:
    """Return True when local_ref carries a URI scheme such as file://."""
    return "://" in local_ref


def resolve_local_path(local_ref: str) -> Path:
    """Turn a filesystem path or file:// URI into a Path.

    Raises:
        LocalFileReadError: If the reference uses a scheme other than file://
    """
    if not is_uri(local_ref):
        return Path(local_ref)

    parsed = urlparse(local_ref)
    if parsed.scheme != "file":
        raise LocalFileReadError(f"Failed to read file: unsupported scheme '{parsed.scheme}'")
    path = url2pathname(parsed.path)
    if parsed.netloc and parsed.netloc != "localhost":
        path = f"//{parsed.netloc}{path}"
    return Path(path)


def _stat_size(path: Path) -> int | None:
    if not path.is_file():
        return None
    return path.stat().st_size


async def get_file_size(local_ref: str) -> int | None:
    """Return the size in bytes, or None when the file does not exist."""
    try:
        path = resolve_local_path(local_ref)
    except LocalFileReadError:
        return None
    return await asyncio.to_thread(_stat_size, path)


async def read_prefix(local_ref: str, length: int) -> bytes:
    """Read at most `length` bytes from the start of the file."""

    def _read() -> bytes:
        with open(resolve_local_path(local_ref), "rb") as f:
            return f.read(length)

    try:
        return await asyncio.to_thread(_read)
    except (OSError, ValueError) as e:
        raise LocalFileReadError(f"Failed to read file: {e}") from e


async def read_bytes_direct(local_ref: str) -> bytes:
    """Read the whole file from a plain filesystem path.

    URIs are not opened here; FetchedBlob handles them through fetch_bytes.

    Raises:
        LocalFileReadError: If local_ref is a URI or the read fails
    """
    if is_uri(local_ref):
        raise LocalFileReadError(f"Failed to read file: direct reader cannot open URI {local_ref}")
    try:
        return await asyncio.to_thread(Path(local_ref).read_bytes)
    except (OSError, ValueError) as e:
        raise LocalFileReadError(f"Failed to read file: {e}") from e


async def fetch_bytes(local_ref: str) -> bytes:
    """Generic byte fetch for any supported local reference, streamed in chunks."""

    def _fetch() -> bytes:
        buffer = bytearray()
        with open(resolve_local_path(local_ref), "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                buffer.extend(chunk)
        return bytes(buffer)

    try:
        data = await asyncio.to_thread(_fetch)
    except (OSError, ValueError) as e:
        raise LocalFileReadError(f"Failed to read file: {e}") from e

    logger.debug("Fetched local resource", extra={"local_ref": local_ref, "size_bytes": len(data)})
    return data
