# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dumpvault Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation and passed
explicitly into each pipeline; nothing reads ambient state at run time.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Tuple
import re

ALL_DATABASES_SENTINELS = ("__ALL__", "ALL")


class Compression(str, Enum):
    """Compression applied to the dump stream."""

    NONE = "none"
    GZIP = "gz"
    BZIP2 = "bz2"
    ZSTD = "zst"

    @property
    def extension(self) -> str:
        if self is Compression.NONE:
            return ".sql"
        return f".sql.{self.value}"

    @property
    def default_level(self) -> int | None:
        return {
            Compression.ZSTD: 19,
            Compression.GZIP: 9,
            Compression.BZIP2: 9,
        }.get(self)


@dataclass(frozen=True)
class DatabaseSelector:
    """
    Which databases a dump covers.

    An empty ``names`` tuple means every database on the server.
    """

    names: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str | None) -> "DatabaseSelector":
        """Parse a comma/space separated list, or an all-databases sentinel."""
        if not text:
            return cls()
        names = tuple(n for n in re.split(r"[,\s]+", text.strip()) if n)
        if not names or (len(names) == 1 and names[0] in ALL_DATABASES_SENTINELS):
            return cls()
        return cls(names=names)

    @property
    def is_all(self) -> bool:
        return not self.names

    def dump_args(self) -> List[str]:
        if self.is_all:
            return ["--all-databases"]
        return ["--databases", *self.names]

    def filename_part(self) -> str:
        if self.is_all:
            return "all-databases"
        return "+".join(self.names)

    def __str__(self) -> str:
        return self.filename_part()


def _validate_owner(value: str | None) -> bool:
    """Owner is a numeric id or a plain user/group name."""
    if value is None:
        return True
    return bool(re.match(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*\$?$", value))


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for backup and restore runs.

    The password is kept out of repr() so it cannot leak through logs
    or tracebacks.
    """

    # Required: database account used by mariadb-dump / mariadb
    user: str

    # Exposed to child processes as MYSQL_PWD only
    password: str | None = field(default=None, repr=False)

    host: str = "db"
    port: int = 3306

    databases: DatabaseSelector = field(default_factory=DatabaseSelector)

    # Output directory for backups, scan directory for restores
    backups_dir: Path = field(default_factory=lambda: Path("/backups"))
    name_prefix: str = ""

    # strftime format for the UTC timestamp in filenames
    date_format: str = "%Y%m%d"

    compression: Compression = Compression.ZSTD

    # None means the compressor's default; ranges are left to the compressor
    compression_level: int | None = None

    # zstd -T value, 0 lets zstd pick
    compression_threads: int = 1

    # Write .sha256 on backup, verify it on restore
    verify_checksum: bool = True

    chown_uid: str | None = None
    chown_gid: str | None = None
    chmod_mode: int | None = None

    dump_binary: str = "mariadb-dump"
    client_binary: str = "mariadb"

    # Abort both pipeline stages after this many seconds
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not self.user:
            errors.append("user is required")

        if not self.host:
            errors.append("host must not be empty")

        if not 1 <= self.port <= 65535:
            errors.append(f"port must be in 1..65535, got {self.port}")

        if not isinstance(self.compression, Compression):
            errors.append(f"Unsupported compression: {self.compression!r}")

        if self.compression_threads < 0:
            errors.append(
                f"compression_threads must be >= 0, got {self.compression_threads}"
            )

        if "/" in self.name_prefix:
            errors.append(f"name_prefix must not contain '/': {self.name_prefix!r}")

        if not self.date_format:
            errors.append("date_format must not be empty")

        if self.chmod_mode is not None and not 0 <= self.chmod_mode <= 0o7777:
            errors.append(f"chmod_mode out of range: {oct(self.chmod_mode)}")

        for label, owner in (("chown_uid", self.chown_uid), ("chown_gid", self.chown_gid)):
            if not _validate_owner(owner):
                errors.append(f"Invalid {label}: {owner!r}")

        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            errors.append(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

        # Raise all errors at once
        if errors:
            from dumpvault.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def effective_compression_level(self) -> int | None:
        if self.compression_level is not None:
            return self.compression_level
        return self.compression.default_level

    @property
    def single_database(self) -> str | None:
        """The selected database name when exactly one is selected."""
        if len(self.databases.names) == 1:
            return self.databases.names[0]
        return None

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import fields

        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(kwargs)
        return BackupConfig(**current)
