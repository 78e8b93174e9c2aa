# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dumpvault Builder - Functional builder pattern for configuration.

This module provides pure functions for building BackupConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable

from dumpvault.config import BackupConfig, Compression, DatabaseSelector
from dumpvault.exceptions import ConfigurationError
from dumpvault.errors import (
    explain_invalid_compressor_env,
    explain_invalid_mode_env,
    explain_missing_user_env,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "user": "",
        "password": None,
        "host": "db",
        "port": 3306,
        "databases": DatabaseSelector(),
        "backups_dir": Path("/backups"),
        "name_prefix": "",
        "date_format": "%Y%m%d",
        "compression": Compression.ZSTD,
        "compression_level": None,
        "compression_threads": 1,
        "verify_checksum": True,
        "chown_uid": None,
        "chown_gid": None,
        "chmod_mode": None,
        "dump_binary": "mariadb-dump",
        "client_binary": "mariadb",
        "timeout_seconds": None,
    }


def with_server(config: ConfigDict, host: str, port: int = 3306) -> ConfigDict:
    """
    Set the database server address.

    Args:
        config: Current configuration dictionary
        host: Hostname or IP of the MariaDB/MySQL server
        port: TCP port (default 3306)

    Returns:
        New configuration dictionary with host and port set
    """
    return {**config, "host": host, "port": port}


def with_credentials(config: ConfigDict, user: str, password: str | None = None) -> ConfigDict:
    """
    Set the database account.

    The password is only ever handed to child processes through their
    environment, never on the command line.
    """
    return {**config, "user": user, "password": password or None}


def select_databases(config: ConfigDict, databases: str | Iterable[str] | None) -> ConfigDict:
    """
    Restrict the dump to named databases.

    Accepts a comma/space separated string (``"a,b"``), an iterable of
    names, or ``None``/``"__ALL__"``/``"ALL"`` for every database.
    """
    if databases is None or isinstance(databases, str):
        selector = DatabaseSelector.parse(databases)
    else:
        selector = DatabaseSelector.parse(" ".join(databases))
    return {**config, "databases": selector}


def all_databases(config: ConfigDict) -> ConfigDict:
    """Dump every database on the server."""
    return {**config, "databases": DatabaseSelector()}


def write_to(config: ConfigDict, backups_dir: Path | str, prefix: str | None = None) -> ConfigDict:
    """
    Set the backup directory and, optionally, the filename prefix.

    Args:
        config: Current configuration dictionary
        backups_dir: Directory archives are written to and restored from
        prefix: Filename prefix (leave as None to keep the current one)

    Returns:
        New configuration dictionary with the output location set
    """
    updated = {**config, "backups_dir": Path(backups_dir)}
    if prefix is not None:
        updated["name_prefix"] = prefix
    return updated


def with_date_format(config: ConfigDict, date_format: str) -> ConfigDict:
    """Set the strftime format used for the UTC timestamp in filenames."""
    return {**config, "date_format": date_format}


def compress_with(
    config: ConfigDict,
    compression: str | Compression,
    level: int | None = None,
    threads: int | None = None,
) -> ConfigDict:
    """
    Choose the compressor.

    The level is passed to the compressor as is; an out-of-range value is
    rejected by the compressor itself when the backup runs.

    Raises:
        ConfigurationError: If the compression choice is unknown
    """
    if isinstance(compression, str):
        try:
            compression = Compression(compression.lower())
        except ValueError as exc:
            raise ConfigurationError(explain_invalid_compressor_env(compression)) from exc

    updated = {**config, "compression": compression, "compression_level": level}
    if threads is not None:
        updated["compression_threads"] = threads
    return updated


def disable_compression(config: ConfigDict) -> ConfigDict:
    """Write plain .sql files."""
    return {**config, "compression": Compression.NONE, "compression_level": None}


def disable_checksum(config: ConfigDict) -> ConfigDict:
    """
    Skip writing .sha256 files on backup and verifying them on restore.

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with checksums disabled
    """
    return {**config, "verify_checksum": False}


def with_ownership(config: ConfigDict, uid: str | int | None, gid: str | int | None = None) -> ConfigDict:
    """
    Chown archives after writing (best effort).

    Either id may be a number or a name; a missing one defaults to the
    current process's id when the chown runs.
    """
    return {
        **config,
        "chown_uid": None if uid is None else str(uid),
        "chown_gid": None if gid is None else str(gid),
    }


def with_permissions(config: ConfigDict, mode: int | str) -> ConfigDict:
    """
    Chmod archives after writing (best effort). String modes are octal.

    Raises:
        ConfigurationError: If a string mode is not octal
    """
    if isinstance(mode, str):
        try:
            mode = int(mode, 8)
        except ValueError as exc:
            raise ConfigurationError(explain_invalid_mode_env(mode)) from exc
    return {**config, "chmod_mode": mode}


def with_binaries(
    config: ConfigDict,
    dump_binary: str | None = None,
    client_binary: str | None = None,
) -> ConfigDict:
    """Override the mariadb-dump / mariadb executables."""
    updated = dict(config)
    if dump_binary:
        updated["dump_binary"] = dump_binary
    if client_binary:
        updated["client_binary"] = client_binary
    return updated


def with_timeout(config: ConfigDict, seconds: float | None) -> ConfigDict:
    """Abort both pipeline stages if a run takes longer than ``seconds``."""
    return {**config, "timeout_seconds": seconds}


def build_config(config_dict: ConfigDict) -> BackupConfig:
    """
    Validate and build an immutable BackupConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable BackupConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    if not config_dict.get("user"):
        raise ConfigurationError(explain_missing_user_env())

    return BackupConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

    This allows a more readable pipeline style:

        config = pipe(
            lambda c: with_credentials(c, "backup"),
            lambda c: select_databases(c, "shop,blog"),
            disable_checksum,
        )(create_empty_config())

    Args:
        *funcs: Builder functions to compose

    Returns:
        A single function that applies all functions in sequence
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def build_from_steps(*steps: BuilderFunc) -> BackupConfig:
    """
    Build config by applying a sequence of builder functions.

    This is a convenience function that combines pipe() and build_config().
    """
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    user: str,
    *,
    password: str | None = None,
    host: str = "db",
    port: int = 3306,
    databases: str | Iterable[str] | None = None,
    backups_dir: str | Path = "/backups",
    name_prefix: str = "",
    compression: str | Compression = "zst",
    compression_level: int | None = None,
    verify_checksum: bool = True,
    **kwargs: Any,
) -> BackupConfig:
    """
    Create a BackupConfig from simple parameters.

    This is the recommended user-facing API for creating configurations.

    Example:
        config = create_config(
            "backup",
            password="secret",
            host="mariadb",
            databases="shop,blog",
            backups_dir="/srv/backups",
            compression="gz",
            compression_level=6,
        )

    Returns:
        Validated, immutable BackupConfig instance
    """
    config_dict = create_empty_config()
    config_dict = with_credentials(config_dict, user, password)
    config_dict = with_server(config_dict, host, port)
    config_dict = select_databases(config_dict, databases)
    config_dict = write_to(config_dict, backups_dir, name_prefix)
    config_dict = compress_with(config_dict, compression, compression_level)

    if not verify_checksum:
        config_dict = disable_checksum(config_dict)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
