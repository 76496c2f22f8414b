"""Content signatures for published packages.

A file digest hashes the file's relative path (with forward slashes) followed
by its content, so renaming a file changes the signature even when the bytes
are unchanged. The package signature hashes the concatenated file digests in
sorted path order, which makes it independent of the order files were found
or copied in.
"""

import asyncio
from collections.abc import Sequence
import hashlib
import logging
from pathlib import Path

import aiofiles

from .config import SIGNATURE_FILE_NAME

__all__ = [
    "file_digest",
    "package_signature",
    "read_signature_file",
    "write_signature_file",
    "SHORT_SIGNATURE_LENGTH",
]

_LOGGER = logging.getLogger(__name__)

SHORT_SIGNATURE_LENGTH = 8
_CHUNK_SIZE = 64 * 1024


def _digest(path: Path, rel_path: str) -> str:
    md5sum = hashlib.md5()
    md5sum.update(rel_path.replace("\\", "/").encode("utf-8"))
    with path.open("rb") as stream:
        while chunk := stream.read(_CHUNK_SIZE):
            md5sum.update(chunk)
    return md5sum.hexdigest()


async def file_digest(path: Path, rel_path: str = "") -> str:
    """Return the hex digest of a file seeded with its relative path.

    The file is hashed in a worker thread and closed before returning, so the
    number of files open at once is bounded by the thread pool size.
    """
    return await asyncio.to_thread(_digest, path, rel_path)


def package_signature(digests: Sequence[tuple[str, str]]) -> str:
    """Return the signature of a package from `(rel_path, digest)` pairs.

    The pairs must be sorted by relative path.
    """
    paths = [rel_path for rel_path, _ in digests]
    if paths != sorted(paths):
        raise ValueError("File digests must be sorted by relative path")
    return hashlib.md5(
        "".join(digest for _, digest in digests).encode("utf-8")
    ).hexdigest()


async def read_signature_file(working_dir: Path) -> str:
    """Return the stored signature of a package directory, or empty string."""
    try:
        async with aiofiles.open(working_dir / SIGNATURE_FILE_NAME) as sig_file:
            return (await sig_file.read()).strip()
    except OSError:
        return ""


async def write_signature_file(working_dir: Path, signature: str) -> None:
    """Write the signature file of a package directory."""
    signature_path = working_dir / SIGNATURE_FILE_NAME
    try:
        async with aiofiles.open(signature_path, mode="w") as sig_file:
            await sig_file.write(signature)
    except OSError:
        _LOGGER.error("Could not write signature file %s", signature_path)
        raise
