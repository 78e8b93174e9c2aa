# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example: nightly backup with a restore drill.

Builds the configuration in code instead of from the environment, takes a
backup, then restores it into a scratch database to prove it loads.

Run with:
    python examples/nightly_backup.py

Environment variables:
    MARIADB_PASSWORD: Password for the backup user
    DRILL_DATABASE: Scratch database for the restore drill (default: restore_drill)
"""

import asyncio
import os
import sys

from dumpvault.backup import run_backup, run_restore
from dumpvault.backup.manager import format_size
from dumpvault.builder import (
    build_from_steps,
    compress_with,
    select_databases,
    with_credentials,
    with_ownership,
    with_permissions,
    with_server,
    with_timeout,
    write_to,
)
from dumpvault.exceptions import DumpVaultError
from dumpvault.logs import configure_logging


def create_nightly_config():
    """Compose the configuration from small builder steps."""
    return build_from_steps(
        lambda c: with_server(c, "db.internal", 3306),
        lambda c: with_credentials(c, "backup", os.getenv("MARIADB_PASSWORD")),
        lambda c: select_databases(c, ["shop", "blog"]),
        lambda c: write_to(c, "/var/backups/mariadb", prefix="nightly"),
        lambda c: compress_with(c, "zst", level=10, threads=0),
        lambda c: with_ownership(c, "backup", "backup"),
        lambda c: with_permissions(c, "0640"),
        lambda c: with_timeout(c, 2 * 60 * 60),
    )


async def nightly() -> None:
    config = create_nightly_config()

    backup = await run_backup(config)
    print(f"Wrote {backup.archive.path} ({format_size(backup.size_bytes)})")
    for warning in backup.warnings:
        print(f"  warning: {warning.action} on {warning.path}: {warning.error}")

    drill = os.getenv("DRILL_DATABASE", "restore_drill")
    restore = await run_restore(config, backup.archive.path, drill)
    print(f"Restore drill into {drill!r} took {restore.duration_seconds:.1f}s")


def main() -> int:
    configure_logging("INFO", "console")
    try:
        asyncio.run(nightly())
    except DumpVaultError as e:
        print(f"Backup failed: {e.message}", file=sys.stderr)
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
