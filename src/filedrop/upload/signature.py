"""
File signature sniffing.

Infers a file extension from the first bytes of a file when the supplied
name has none. This is a best-effort classifier, not a validator: an
unknown signature or a failed read yields None and never rejects a file.

Recognised signatures:
- JPEG: FF D8 FF
- PNG:  89 50 4E 47
- GIF:  47 49 46 38
- PDF:  25 50 44 46
"""

import logging
from typing import NamedTuple, Optional, Tuple

from filedrop.storage.local import read_prefix
from filedrop.upload.exceptions import LocalFileReadError

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 4


class FileSignature(NamedTuple):
    """Magic number prefix mapped to an extension and MIME type."""

    prefix: bytes
    extension: str
    mime_type: str


SIGNATURES: Tuple[FileSignature, ...] = (
    FileSignature(b"\xff\xd8\xff", ".jpg", "image/jpeg"),
    FileSignature(b"\x89PNG", ".png", "image/png"),
    FileSignature(b"GIF8", ".gif", "image/gif"),
    FileSignature(b"%PDF", ".pdf", "application/pdf"),
)


def match_signature(header: bytes) -> Optional[FileSignature]:
    """
    Match the leading bytes of a file against the signature table.

    Args:
        header: Leading bytes of the file (at least 4 for a match)

    Returns:
        The matching FileSignature, or None

    Examples:
        >>> match_signature(bytes.fromhex("ffd8ffe0")).extension
        '.jpg'
        >>> match_signature(b"PK\\x03\\x04") is None
        True
    """
    if len(header) < SIGNATURE_LENGTH:
        return None
    head = header[:SIGNATURE_LENGTH]
    for signature in SIGNATURES:
        if head.startswith(signature.prefix):
            return signature
    return None


async def detect_extension(local_ref: str) -> Optional[str]:
    """
    Detect the extension of a local file from its first 4 bytes.

    Args:
        local_ref: Filesystem path or file:// URI

    Returns:
        Extension including the dot (".jpg", ".png", ".gif", ".pdf") or None
    """
    try:
        header = await read_prefix(local_ref, SIGNATURE_LENGTH)
    except LocalFileReadError as e:
        logger.warning("Could not read file signature", extra={"local_ref": local_ref, "error": str(e)})
        return None

    signature = match_signature(header)
    if signature is None:
        logger.info("Unrecognised file signature", extra={"local_ref": local_ref, "signature": header.hex()})
        return None

    logger.info(
        "Detected file type from signature",
        extra={"local_ref": local_ref, "extension": signature.extension, "mime_type": signature.mime_type},
    )
    return signature.extension
