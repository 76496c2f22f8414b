"""Tests for content signatures."""

import hashlib
from pathlib import Path

import pytest

from yalc.signature import (
    file_digest,
    package_signature,
    read_signature_file,
    write_signature_file,
)


async def test_file_digest_includes_path(tmp_path: Path) -> None:
    """Test the digest covers the relative path and the content."""
    example = tmp_path / "index.js"
    example.write_bytes(b"module.exports = 1;\n")

    digest = await file_digest(example, "lib/index.js")
    assert digest == hashlib.md5(b"lib/index.jsmodule.exports = 1;\n").hexdigest()
    assert len(digest) == 32

    assert await file_digest(example, "lib\\index.js") == digest
    assert await file_digest(example, "other/index.js") != digest


def test_package_signature() -> None:
    """Test the package signature hashes digests in path order."""
    digests = [("a.js", "1" * 32), ("b/c.js", "2" * 32)]
    expected = hashlib.md5(("1" * 32 + "2" * 32).encode()).hexdigest()
    assert package_signature(digests) == expected


def test_package_signature_unsorted() -> None:
    """Test digests must be sorted by relative path."""
    with pytest.raises(ValueError, match="sorted"):
        package_signature([("b.js", "1" * 32), ("a.js", "2" * 32)])


async def test_signature_file(tmp_path: Path) -> None:
    """Test reading and writing the signature file."""
    assert await read_signature_file(tmp_path) == ""
    await write_signature_file(tmp_path, "abc123")
    assert (tmp_path / "yalc.sig").read_text() == "abc123"
    assert await read_signature_file(tmp_path) == "abc123"
