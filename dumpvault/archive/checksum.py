# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive checksums.

Checksum files use the sha256sum text format, ``<hex>  <basename>``, so an
operator can run ``sha256sum -c`` from the archive directory as well.
"""

import hashlib
import re
from pathlib import Path
from typing import Tuple

import aiofiles
import aiofiles.os
import structlog

from dumpvault.archive.naming import checksum_path_for
from dumpvault.exceptions import IntegrityError

logger = structlog.get_logger()

CHUNK_SIZE = 1024 * 1024

_CHECKSUM_LINE = re.compile(r"^([0-9a-fA-F]{64})\s+\*?(.+)$")


async def compute_sha256(path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """
    Hash a file in chunks without loading it into memory.

    Args:
        path: File to hash
        chunk_size: Bytes read per iteration

    Returns:
        Lowercase hex SHA-256 digest
    """
    digest = hashlib.sha256()
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


async def write_checksum_file(archive: Path) -> Path:
    """
    Write ``<archive>.sha256`` next to the archive.

    The file is written atomically (write to temp, then rename) so a
    reader never sees a truncated checksum.

    Returns:
        Path to the checksum file
    """
    checksum_path = checksum_path_for(archive)
    temp_path = checksum_path.with_name(checksum_path.name + ".tmp")

    hexdigest = await compute_sha256(archive)

    async with aiofiles.open(temp_path, "w") as f:
        await f.write(f"{hexdigest}  {archive.name}\n")

    await aiofiles.os.replace(temp_path, checksum_path)

    logger.debug("checksum_computed", archive=str(archive), sha256=hexdigest)
    return checksum_path


async def read_checksum_file(checksum_path: Path) -> Tuple[str, str]:
    """
    Parse a checksum file.

    Returns:
        (hexdigest, filename) from its first line

    Raises:
        IntegrityError: If the file is unreadable or not in sha256sum format
    """
    try:
        async with aiofiles.open(checksum_path, "r") as f:
            first_line = (await f.readline()).strip()
    except (OSError, UnicodeDecodeError) as e:
        raise IntegrityError(
            f"Cannot read checksum file: {e}",
            details={"checksum_path": str(checksum_path)},
        ) from e

    match = _CHECKSUM_LINE.match(first_line)
    if not match:
        raise IntegrityError(
            "Malformed checksum file",
            details={"checksum_path": str(checksum_path)},
        )
    return match.group(1).lower(), match.group(2)


async def verify_checksum(archive: Path, checksum_path: Path | None = None) -> str:
    """
    Check an archive against its checksum file.

    Only the stored digest is compared; the recorded filename may be a
    bare name or a full path depending on which tool wrote it.

    Returns:
        The verified hex digest

    Raises:
        IntegrityError: On mismatch or an unusable checksum file
    """
    checksum_path = checksum_path or checksum_path_for(archive)
    expected, recorded_name = await read_checksum_file(checksum_path)
    actual = await compute_sha256(archive)

    if actual != expected:
        raise IntegrityError(
            f"Checksum mismatch for {archive.name}",
            details={
                "archive": str(archive),
                "expected": expected,
                "actual": actual,
                "recorded_name": recorded_name,
            },
        )
    return actual
