"""
Filename policy for storage object keys.

Capture sources (camera intents, share sheets) often hand over names with no
extension or with characters that are unsafe in a storage path. Everything
here is pure: no I/O, and every function accepts any string.
"""

import re
import threading
import time
from typing import Dict, Optional

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

DEFAULT_IMAGE_EXTENSION = ".jpg"
DEFAULT_DOCUMENT_EXTENSION = ".pdf"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

EXTENSION_CONTENT_TYPES: Dict[str, str] = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "heic": "image/heic",
    "heif": "image/heif",
    "txt": "text/plain",
}


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def sanitize(name: str) -> str:
    """Make a name safe to use as (part of) a storage key.

    Strips a single leading ``/`` so keys never start with a double separator,
    then replaces every character outside ``[A-Za-z0-9._-]`` with ``_``.
    The result may be empty; callers must not build a key from an empty name.
    """
    if name.startswith("/"):
        name = name[1:]
    return _UNSAFE_CHARS.sub("_", name)


def has_extension(name: str) -> bool:
    return "." in name


def extension_of(name: str) -> Optional[str]:
    """Return the lowercase extension without the dot, or None."""
    if not has_extension(name):
        return None
    ext = name.rsplit(".", 1)[-1].lower()
    return ext or None


def content_type_for(name: str) -> str:
    """Map a filename's extension to a MIME type."""
    ext = extension_of(name)
    if ext is None:
        return DEFAULT_CONTENT_TYPE
    return EXTENSION_CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def ensure_extension(
    name: str,
    is_image: bool,
    detected_extension: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> str:
    """Give extension-less names a usable, unique default name.

    Names that already contain a ``.`` are returned unchanged. Otherwise the
    capture source decides the stem (``photo_`` or ``document_`` plus the
    current millisecond timestamp) and the extension is the sniffed one when
    available, falling back to ``.jpg`` for images and ``.pdf`` otherwise.

    Examples:
        >>> ensure_extension("scan.png", is_image=False)
        'scan.png'
        >>> ensure_extension("Report", is_image=False, now_ms=1700000000000)
        'document_1700000000000.pdf'
        >>> ensure_extension("IMG", is_image=True, detected_extension=".png", now_ms=1)
        'photo_1.png'
    """
    if has_extension(name):
        return name

    ts = now_millis() if now_ms is None else now_ms
    if detected_extension:
        ext = detected_extension if detected_extension.startswith(".") else f".{detected_extension}"
    else:
        ext = DEFAULT_IMAGE_EXTENSION if is_image else DEFAULT_DOCUMENT_EXTENSION
    stem = "photo" if is_image else "document"
    return f"{stem}_{ts}{ext}"


def build_object_key(name: str, now_ms: int) -> str:
    """Storage key format: ``{unixMillis}_{sanitizedName}``."""
    return f"{now_ms}_{name}"


class ObjectKeyFactory:
    """Mints object keys with strictly increasing millisecond stamps.

    Two keys requested within the same millisecond get consecutive stamps, so
    keys from one process never collide even for identical names.
    """

    def __init__(self, clock=now_millis):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_timestamp(self) -> int:
        with self._lock:
            ts = max(self._clock(), self._last + 1)
            self._last = ts
            return ts

    def new_key(self, sanitized_name: str) -> str:
        return build_object_key(sanitized_name, self.next_timestamp())


key_factory = ObjectKeyFactory()
