"""Tests for file signature sniffing."""

import pytest

from filedrop.upload.signature import SIGNATURES, detect_extension, match_signature


@pytest.mark.parametrize(
    "header,expected",
    [
        ("ffd8ffe0", ".jpg"),
        ("ffd8ffe1", ".jpg"),
        ("89504e47", ".png"),
        ("47494638", ".gif"),
        ("25504446", ".pdf"),
    ],
)
def test_match_signature_known_formats(header, expected):
    """Known magic numbers map to their extension."""
    assert match_signature(bytes.fromhex(header)).extension == expected


@pytest.mark.parametrize("header", ["504b0304", "00000000", "ffd8aaff", "7f454c46", "ffd8ff"])
def test_match_signature_unknown_or_short(header):
    """Unknown prefixes and headers shorter than 4 bytes give no match."""
    assert match_signature(bytes.fromhex(header)) is None


def test_signature_table_is_immutable():
    assert isinstance(SIGNATURES, tuple)
    assert {s.extension for s in SIGNATURES} == {".jpg", ".png", ".gif", ".pdf"}


@pytest.mark.asyncio
async def test_detect_extension_reads_file(tmp_path):
    path = tmp_path / "upload"
    path.write_bytes(bytes.fromhex("89504e470d0a1a0a") + b"rest of png")

    assert await detect_extension(str(path)) == ".png"


@pytest.mark.asyncio
async def test_detect_extension_accepts_file_uri(tmp_path):
    path = tmp_path / "my scan"
    path.write_bytes(b"%PDF-1.7 body")

    assert await detect_extension(path.as_uri()) == ".pdf"


@pytest.mark.asyncio
async def test_detect_extension_unknown_content(tmp_path):
    path = tmp_path / "notes"
    path.write_bytes(b"plain text notes")

    assert await detect_extension(str(path)) is None


@pytest.mark.asyncio
async def test_detect_extension_missing_file_returns_none(tmp_path):
    """A read failure never raises."""
    assert await detect_extension(str(tmp_path / "missing")) is None


@pytest.mark.asyncio
async def test_detect_extension_unsupported_scheme_returns_none():
    assert await detect_extension("content://media/external/images/1") is None
