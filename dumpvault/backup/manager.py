# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dumpvault Backup Manager - Dump a server into a checksummed archive.

A run streams ``mariadb-dump | compressor > archive``, refuses to keep
anything from a failed or empty dump, then writes the checksum and applies
best-effort ownership/permissions.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import List

import structlog
from ulid import ULID

from dumpvault.archive.checksum import write_checksum_file
from dumpvault.archive.compressor import compress_command
from dumpvault.archive.naming import ArchiveDescriptor, describe_new_archive
from dumpvault.archive.permissions import BestEffortWarning, apply_file_metadata
from dumpvault.client import dump_command
from dumpvault.config import BackupConfig
from dumpvault.exceptions import BackupError, IntegrityError, StageFailure
from dumpvault.pipeline import PipelineResult, run_pipeline

logger = structlog.get_logger()


@dataclass
class BackupResult:
    """Result of a successful backup run."""

    run_id: str  # ULID
    archive: ArchiveDescriptor
    pipeline: PipelineResult
    size_bytes: int
    checksum_path: Path | None = None
    warnings: List[BestEffortWarning] = field(default_factory=list)
    duration_seconds: float = 0.0


def format_size(num_bytes: int) -> str:
    """Human-readable size, like ``du -h``."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{num_bytes}B"


def _discard(path: Path) -> None:
    """Remove a partial artifact if present."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("partial_artifact_not_removed", path=str(path), error=str(e))


async def run_backup(config: BackupConfig, now: datetime | None = None) -> BackupResult:
    """
    Dump the configured databases into a new archive.

    This is the main entry point for backups.

    Args:
        config: Validated configuration
        now: Timestamp used for the filename (default: current UTC time)

    Returns:
        BackupResult describing the archive

    Raises:
        BackupError: If the backup directory or archive cannot be created
        StageFailure: If the dump or the compressor exits non-zero; the
                      exit code is the pipeline's status
        IntegrityError: If the stages succeeded but the archive is empty
    """
    start_time = datetime.now(UTC)
    run_id = str(ULID())
    log = logger.bind(run_id=run_id)

    try:
        config.backups_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupError(
            f"Cannot create backup directory: {e}",
            details={"backups_dir": str(config.backups_dir)},
        ) from e

    archive = describe_new_archive(config, now or start_time)

    # A same-day rerun overwrites the archive; its old checksum must not survive
    _discard(archive.checksum_path)

    log.info("backup_started", archive=str(archive.path))
    log.info(
        "backup_target",
        host=config.host,
        port=config.port,
        databases=str(config.databases),
        compressor=config.compression.value,
    )

    dump = dump_command(config)
    compress = compress_command(config)
    log.info(
        "dump_command",
        command=dump.display(),
        compress=compress.display() if compress else None,
    )

    try:
        result = await run_pipeline(
            dump,
            compress,
            sink=archive.path,
            timeout=config.timeout_seconds,
        )
    except StageFailure as e:
        log.error("backup_failed", exit_code=e.exit_code, error=e.message)
        _discard(archive.path)
        raise
    except OSError as e:
        _discard(archive.path)
        raise BackupError(
            f"Cannot write archive: {e}",
            details={"archive": str(archive.path)},
        ) from e
    except asyncio.CancelledError:
        log.warning("backup_cancelled", archive=str(archive.path))
        _discard(archive.path)
        raise

    if not result.ok:
        failed = result.failed_stage
        log.error(
            "backup_failed",
            exit_code=result.returncode,
            stage=failed.name if failed else None,
            timed_out=result.timed_out,
        )
        for stage in result.stages:
            for line in stage.output_lines():
                log.error("stage_output", stage=stage.name, line=line)
        _discard(archive.path)
        raise StageFailure(
            f"Backup FAILED with exit code {result.returncode}",
            result.returncode,
            details={"stage": failed.name if failed else "timeout"},
        )

    size = archive.path.stat().st_size if archive.path.exists() else 0
    if size == 0:
        log.error("backup_failed", reason="produced empty file")
        _discard(archive.path)
        raise IntegrityError(
            "Backup FAILED: produced empty file",
            details={"archive": str(archive.path)},
        )

    log.info("dump_written", archive=str(archive.path), size=format_size(size), bytes=size)

    checksum_path = None
    if config.verify_checksum:
        try:
            checksum_path = await write_checksum_file(archive.path)
        except OSError as e:
            raise BackupError(
                f"Cannot write checksum file: {e}",
                details={"archive": str(archive.path)},
            ) from e
        log.info("checksum_written", checksum=str(checksum_path))

    warnings = apply_file_metadata(
        [p for p in (archive.path, checksum_path) if p is not None],
        config,
    )

    duration = (datetime.now(UTC) - start_time).total_seconds()
    log.info(
        "backup_completed",
        archive=str(archive.path),
        bytes=size,
        duration=duration,
        warnings=len(warnings),
    )

    return BackupResult(
        run_id=run_id,
        archive=archive,
        pipeline=result,
        size_bytes=size,
        checksum_path=checksum_path,
        warnings=warnings,
        duration_seconds=duration,
    )
