# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration.

Reads the well-known MARIADB_* / BACKUP* variables once at startup and
turns them into an immutable BackupConfig via create_config(). All parsing
problems surface as ConfigurationError before any process is spawned.
"""

from __future__ import annotations

import os
from typing import Mapping

from dumpvault.builder import create_config
from dumpvault.config import BackupConfig, Compression
from dumpvault.errors import (
    explain_invalid_boolean_env,
    explain_invalid_compressor_env,
    explain_invalid_integer_env,
    explain_invalid_mode_env,
    explain_invalid_timeout_env,
    explain_missing_user_env,
)
from dumpvault.exceptions import ConfigurationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _get(environ: Mapping[str, str], *names: str) -> str | None:
    """First non-empty value among ``names`` (later names are legacy aliases)."""
    for name in names:
        value = environ.get(name)
        if value is not None and value.strip() != "":
            return value.strip()
    return None


def _parse_int(name: str, value: str | None, default: int | None) -> int | None:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_integer_env(name, value)) from exc


def _parse_bool(name: str, value: str | None, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(explain_invalid_boolean_env(name, value))


def _parse_compression(value: str | None) -> Compression:
    if value is None:
        return Compression.ZSTD
    try:
        return Compression(value.lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_compressor_env(value)) from exc


def _parse_mode(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        mode = int(value, 8)
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_mode_env(value)) from exc
    if not 0 <= mode <= 0o7777:
        raise ConfigurationError(explain_invalid_mode_env(value))
    return mode


def _parse_timeout(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_timeout_env(value)) from exc
    if seconds <= 0:
        raise ConfigurationError(explain_invalid_timeout_env(value))
    return seconds


def create_config_from_env(environ: Mapping[str, str] | None = None) -> BackupConfig:
    """
    Create a BackupConfig from environment variables.

    Required:
        - MARIADB_USER: Database account

    Optional environment variables:
        - MARIADB_PASSWORD: Password, handed to tools as MYSQL_PWD only
        - MARIADB_DATABASE: '__ALL__' (default) or a comma/space separated list
        - MARIADB_HOST / MARIADB_PORT: Server address (default db:3306)
        - BACKUPS_DIR: Archive directory (default /backups)
        - BACKUP_NAME_PREFIX: Filename prefix (default empty)
        - DATE_FMT: UTC strftime format for filenames (default %Y%m%d)
        - COMPRESSOR: 'zst' (default) | 'gz' | 'bz2' | 'none' (alias COMPRESS)
        - COMPRESSOR_LEVEL: Passed to the compressor unchecked (alias COMPRESS_LEVEL)
        - ZSTD_THREADS: zstd thread count, 0 = auto (default 1)
        - VERIFY_SHA256: 1 (default) writes/verifies .sha256 files
        - CHOWN_UID / CHOWN_GID / CHMOD_MODE: Best-effort file metadata
        - MARIADB_DUMP_BIN / MARIADB_CLIENT_BIN: Tool overrides
        - BACKUP_TIMEOUT: Seconds before both pipeline stages are killed
    """
    env = os.environ if environ is None else environ

    user = _get(env, "MARIADB_USER")
    if not user:
        raise ConfigurationError(explain_missing_user_env())

    # Passwords may legitimately contain surrounding whitespace
    password = env.get("MARIADB_PASSWORD") or None

    return create_config(
        user,
        password=password,
        host=_get(env, "MARIADB_HOST") or "db",
        port=_parse_int("MARIADB_PORT", _get(env, "MARIADB_PORT"), 3306),
        databases=_get(env, "MARIADB_DATABASE"),
        backups_dir=_get(env, "BACKUPS_DIR") or "/backups",
        name_prefix=_get(env, "BACKUP_NAME_PREFIX") or "",
        compression=_parse_compression(_get(env, "COMPRESSOR", "COMPRESS")),
        compression_level=_parse_int(
            "COMPRESSOR_LEVEL", _get(env, "COMPRESSOR_LEVEL", "COMPRESS_LEVEL"), None
        ),
        verify_checksum=_parse_bool("VERIFY_SHA256", _get(env, "VERIFY_SHA256"), True),
        date_format=_get(env, "DATE_FMT") or "%Y%m%d",
        compression_threads=_parse_int("ZSTD_THREADS", _get(env, "ZSTD_THREADS"), 1),
        chown_uid=_get(env, "CHOWN_UID"),
        chown_gid=_get(env, "CHOWN_GID"),
        chmod_mode=_parse_mode(_get(env, "CHMOD_MODE")),
        dump_binary=_get(env, "MARIADB_DUMP_BIN") or "mariadb-dump",
        client_binary=_get(env, "MARIADB_CLIENT_BIN") or "mariadb",
        timeout_seconds=_parse_timeout(_get(env, "BACKUP_TIMEOUT")),
    )
