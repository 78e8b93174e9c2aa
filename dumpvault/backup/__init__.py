# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Backup and restore pipelines.
"""

from dumpvault.backup.manager import (
    run_backup,
    BackupResult,
)

from dumpvault.backup.restore import (
    run_restore,
    ensure_database,
    RestoreResult,
)

__all__ = [
    # Manager
    "run_backup",
    "BackupResult",
    # Restore
    "run_restore",
    "ensure_database",
    "RestoreResult",
]
