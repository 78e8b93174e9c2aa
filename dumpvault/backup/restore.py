# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dumpvault Restore Manager - Load an archive back into the server.

The archive is located, verified against its checksum before anything
touches the database, then streamed through ``decompressor | mariadb``.
The archive itself is never modified.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import List

import structlog
from ulid import ULID

from dumpvault.archive.checksum import verify_checksum
from dumpvault.archive.compressor import decompress_command
from dumpvault.archive.locator import locate_archive
from dumpvault.archive.naming import ArchiveDescriptor, checksum_path_for
from dumpvault.client import create_database_command, restore_command
from dumpvault.config import BackupConfig
from dumpvault.exceptions import IntegrityError, RestoreError, StageFailure
from dumpvault.pipeline import PipelineResult, StageResult, run_pipeline

logger = structlog.get_logger()


@dataclass
class RestoreResult:
    """Result of a successful restore run."""

    run_id: str  # ULID
    archive: ArchiveDescriptor
    target_database: str | None
    pipeline: PipelineResult
    checksum_verified: bool = False
    duration_seconds: float = 0.0


def _log_stage_output(log, stages: List[StageResult]) -> None:
    """Surface captured diagnostics line by line, tagged with their stage."""
    for stage in stages:
        for line in stage.output_lines():
            log.error("stage_output", stage=stage.name, line=line)


async def ensure_database(config: BackupConfig, database: str, log=None) -> None:
    """
    Create ``database`` if it does not exist yet.

    Raises:
        StageFailure: If the mariadb client exits non-zero
    """
    log = log or logger
    log.info("ensure_database", database=database)

    result = await run_pipeline(
        create_database_command(config, database),
        timeout=config.timeout_seconds,
    )
    if not result.ok:
        _log_stage_output(log, result.stages)
        raise StageFailure(
            f"Could not create database {database!r}",
            result.returncode,
            details={"database": database},
        )


async def run_restore(
    config: BackupConfig,
    archive: Path | str | None = None,
    target_database: str | None = None,
) -> RestoreResult:
    """
    Restore an archive into the configured server.

    This is the main entry point for restores.

    Args:
        config: Validated configuration
        archive: Archive file, directory to pick the newest archive from,
                 or None for the configured backups directory
        target_database: Database to restore into; created if missing.
                         None leaves database selection to the dump itself.

    Returns:
        RestoreResult with operation details

    Raises:
        ArchiveNotFoundError / NoArchiveFoundError: Nothing to restore
        IntegrityError: Checksum mismatch (the database is not touched)
        UnsupportedArchiveError: Unknown archive extension
        StageFailure: A pipeline stage exited non-zero
    """
    start_time = datetime.now(UTC)
    run_id = str(ULID())
    log = logger.bind(run_id=run_id)

    path = locate_archive(archive, config)
    log.info("archive_selected", archive=str(path))

    checksum_verified = False
    checksum_path = checksum_path_for(path)
    if config.verify_checksum and checksum_path.exists():
        log.info("checksum_verifying", checksum=str(checksum_path))
        try:
            digest = await verify_checksum(path, checksum_path)
        except IntegrityError as e:
            log.error("checksum_mismatch", archive=str(path), error=str(e))
            raise
        checksum_verified = True
        log.info("checksum_verified", sha256=digest)

    descriptor = ArchiveDescriptor.from_path(path)
    decompress = decompress_command(descriptor)

    if target_database:
        await ensure_database(config, target_database, log)

    restore = restore_command(config, target_database)

    log.info(
        "restore_started",
        archive=str(path),
        host=config.host,
        port=config.port,
        database=target_database or "(as in dump)",
    )
    log.info(
        "restore_command",
        command=restore.display(),
        decompress=decompress.display() if decompress else None,
    )

    stages = (decompress, restore) if decompress else (restore, None)
    try:
        result = await run_pipeline(
            *stages,
            source=path,
            timeout=config.timeout_seconds,
        )
    except OSError as e:
        raise RestoreError(
            f"Cannot read archive: {e}",
            details={"archive": str(path)},
        ) from e

    if not result.ok:
        failed = result.failed_stage
        log.error("restore_tool_errors", stage=failed.name if failed else None)
        _log_stage_output(log, result.stages)
        log.error("restore_failed", exit_code=result.returncode, timed_out=result.timed_out)
        raise StageFailure(
            f"Restore FAILED with exit code {result.returncode}",
            result.returncode,
            details={"stage": failed.name if failed else "timeout"},
        )

    duration = (datetime.now(UTC) - start_time).total_seconds()
    log.info("restore_completed", archive=str(path), duration=duration)

    return RestoreResult(
        run_id=run_id,
        archive=descriptor,
        target_database=target_database,
        pipeline=result,
        checksum_verified=checksum_verified,
        duration_seconds=duration,
    )
