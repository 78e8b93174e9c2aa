# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive naming - the filename contract shared by backup and restore.

Archives are named ``<prefix>-<db-part>-<UTC timestamp><ext>`` and their
checksum lives next to them as ``<archive>.sha256``.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path

from dumpvault.config import BackupConfig, Compression
from dumpvault.errors import explain_unsupported_extension
from dumpvault.exceptions import UnsupportedArchiveError

CHECKSUM_SUFFIX = ".sha256"

# Longest first so ".sql.gz" wins over ".sql"
SUPPORTED_EXTENSIONS = sorted(
    ((c.extension, c) for c in Compression),
    key=lambda item: len(item[0]),
    reverse=True,
)


def compression_for_path(path: Path | str) -> Compression | None:
    """Compression implied by a filename, or None if unsupported."""
    name = Path(path).name
    for extension, compression in SUPPORTED_EXTENSIONS:
        if name.endswith(extension) and len(name) > len(extension):
            return compression
    return None


def is_archive_name(name: str, prefix: str = "") -> bool:
    """True for ``prefix*`` names ending in a supported archive extension."""
    return name.startswith(prefix) and compression_for_path(name) is not None


@dataclass(frozen=True)
class ArchiveDescriptor:
    """Logical identity of one backup artifact."""

    path: Path
    compression: Compression
    created_at: datetime | None = None

    @classmethod
    def from_path(cls, path: Path | str) -> "ArchiveDescriptor":
        """
        Describe an existing archive from its filename.

        Raises:
            UnsupportedArchiveError: If the extension matches no compressor
        """
        path = Path(path)
        compression = compression_for_path(path)
        if compression is None:
            raise UnsupportedArchiveError(
                explain_unsupported_extension(str(path)),
                details={"path": str(path)},
            )
        created_at = None
        if path.exists():
            created_at = datetime.fromtimestamp(path.stat().st_mtime, UTC)
        return cls(path=path, compression=compression, created_at=created_at)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        return self.compression.extension

    @property
    def checksum_path(self) -> Path:
        return checksum_path_for(self.path)


def checksum_path_for(path: Path) -> Path:
    """The checksum file that accompanies ``path``."""
    return path.with_name(path.name + CHECKSUM_SUFFIX)


def build_archive_name(config: BackupConfig, now: datetime | None = None) -> str:
    """
    Compute the archive filename for a backup started at ``now`` (UTC).

    The name is deterministic: two runs in the same DATE_FMT period produce
    the same name and the later one overwrites the earlier.
    """
    now = now or datetime.now(UTC)
    timestamp = now.astimezone(UTC).strftime(config.date_format)
    parts = [config.databases.filename_part(), timestamp]
    if config.name_prefix:
        parts.insert(0, config.name_prefix)
    return "-".join(parts) + config.compression.extension


def describe_new_archive(config: BackupConfig, now: datetime | None = None) -> ArchiveDescriptor:
    """Descriptor for the archive a backup run is about to write."""
    now = now or datetime.now(UTC)
    path = config.backups_dir / build_archive_name(config, now)
    return ArchiveDescriptor(path=path, compression=config.compression, created_at=now)
