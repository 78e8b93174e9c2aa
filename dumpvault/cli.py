# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Command-line entry points.

All settings come from the environment (see dumpvault.env). The process
exit status reports the outcome:

    0    success
    64   configuration / usage error
    65   unsupported archive extension
    66   archive not found, or no archive to restore
    1    checksum mismatch or empty dump
    124  timeout
    127  tool not found
    *    the failing pipeline stage's own exit status
"""

import asyncio
from typing import Awaitable, Callable

import click
import structlog

from dumpvault import __version__
from dumpvault.backup import run_backup, run_restore
from dumpvault.config import BackupConfig
from dumpvault.env import create_config_from_env
from dumpvault.exceptions import DumpVaultError
from dumpvault.logs import LOG_FORMATS, configure_logging

logger = structlog.get_logger()


def _execute(job: Callable[[BackupConfig], Awaitable[object]]) -> int:
    """Resolve configuration, run ``job`` and map its outcome to an exit status."""
    try:
        config = create_config_from_env()
        asyncio.run(job(config))
    except DumpVaultError as e:
        logger.error(
            "run_failed",
            error=e.message,
            kind=type(e).__name__,
            exit_code=e.exit_code,
            details=e.details or None,
        )
        return e.exit_code
    return 0


@click.group()
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    default="INFO",
    show_default=True,
    help="Minimum log level (DEBUG, INFO, WARNING, ERROR).",
)
@click.option(
    "--log-format",
    envvar="LOG_FORMAT",
    type=click.Choice(LOG_FORMATS),
    default="console",
    show_default=True,
    help="Log rendering.",
)
@click.version_option(version=__version__, prog_name="dumpvault")
def cli(log_level, log_format):
    """dumpvault - MariaDB/MySQL backup and restore.

    Configure with environment variables (MARIADB_USER is required):
    MARIADB_PASSWORD, MARIADB_HOST, MARIADB_PORT, MARIADB_DATABASE,
    BACKUPS_DIR, BACKUP_NAME_PREFIX, DATE_FMT, COMPRESSOR,
    COMPRESSOR_LEVEL, ZSTD_THREADS, VERIFY_SHA256, CHOWN_UID, CHOWN_GID,
    CHMOD_MODE, BACKUP_TIMEOUT.

    Examples:
        # Nightly dump of everything (e.g. from cron)
        dumpvault backup

        # Restore the newest archive in $BACKUPS_DIR
        dumpvault restore

        # Restore a specific archive into a specific database
        dumpvault restore /backups/shop-20261018.sql.zst shop_staging
    """
    configure_logging(log_level, log_format)


@cli.command("backup")
@click.pass_context
def backup_command(ctx):
    """Dump the configured databases into a new archive."""
    ctx.exit(_execute(run_backup))


@cli.command("restore")
@click.argument("archive", required=False, type=click.Path(dir_okay=True, file_okay=True))
@click.argument("database", required=False)
@click.pass_context
def restore_command(ctx, archive, database):
    """Restore ARCHIVE (default: newest in BACKUPS_DIR) into DATABASE.

    ARCHIVE may be an archive file or a directory to pick the newest
    archive from. DATABASE defaults to MARIADB_DATABASE when that names a
    single database; otherwise the dump's own statements decide.
    """

    async def job(config: BackupConfig):
        target = database or config.single_database
        return await run_restore(config, archive, target)

    ctx.exit(_execute(job))


def main() -> None:  # pragma: no cover - console script
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
