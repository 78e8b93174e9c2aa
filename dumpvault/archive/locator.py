# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore-side archive discovery.

There is no catalog: archives are found by listing the backup directory.
"""

from pathlib import Path
from typing import List

import structlog

from dumpvault.archive.naming import is_archive_name
from dumpvault.config import BackupConfig
from dumpvault.errors import explain_no_candidate
from dumpvault.exceptions import ArchiveNotFoundError, NoArchiveFoundError

logger = structlog.get_logger()


def find_archive_candidates(directory: Path, prefix: str = "") -> List[Path]:
    """
    List archives in ``directory`` whose names start with ``prefix``.

    Checksum files and unsupported extensions are ignored. A missing
    directory simply has no candidates.
    """
    if not directory.is_dir():
        return []
    return [
        entry
        for entry in directory.iterdir()
        if entry.is_file() and is_archive_name(entry.name, prefix)
    ]


def select_newest(candidates: List[Path]) -> Path:
    """
    Most recently modified candidate.

    Ties on modification time go to the lexicographically greatest name.
    """
    return max(candidates, key=lambda p: (p.stat().st_mtime_ns, p.name))


def locate_archive(target: Path | str | None, config: BackupConfig) -> Path:
    """
    Resolve a restore target to a single archive file.

    Args:
        target: An archive file, a directory to scan, or None for
                the configured backups directory
        config: Provides the backups directory and filename prefix

    Returns:
        Path to the archive

    Raises:
        ArchiveNotFoundError: If an explicit target does not exist
        NoArchiveFoundError: If a scanned directory holds no archive
    """
    if target is not None:
        target = Path(target)
        if target.is_file():
            return target
        if not target.is_dir():
            raise ArchiveNotFoundError(
                f"Input file not found: {target}",
                details={"path": str(target)},
            )
        directory = target
    else:
        directory = config.backups_dir

    logger.info("archive_scan_started", directory=str(directory), prefix=config.name_prefix)

    candidates = find_archive_candidates(directory, config.name_prefix)
    if not candidates:
        raise NoArchiveFoundError(
            explain_no_candidate(str(directory), config.name_prefix),
            details={"directory": str(directory)},
        )

    newest = select_newest(candidates)
    logger.debug("archive_candidates", count=len(candidates), selected=newest.name)
    return newest
