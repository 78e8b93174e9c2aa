# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dumpvault - Predictable MariaDB/MySQL backups.

Dumps a server to a compressed, checksummed archive by streaming
mariadb-dump through an external compressor, and restores the newest (or a
named) archive back through the matching decompressor. Package name: dumpvault.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from dumpvault.builder import create_config
from dumpvault.config import BackupConfig, Compression, DatabaseSelector

# Environment-based configuration
from dumpvault.env import create_config_from_env

# Pipelines
from dumpvault.backup import (
    run_backup,
    run_restore,
    BackupResult,
    RestoreResult,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "create_config",
    "create_config_from_env",
    "BackupConfig",
    "Compression",
    "DatabaseSelector",
    # Pipelines
    "run_backup",
    "run_restore",
    "BackupResult",
    "RestoreResult",
]
