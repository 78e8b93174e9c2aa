# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive helper tests: naming, checksums, discovery and best-effort
file metadata.
"""

import hashlib
import os
from datetime import datetime, timezone, timedelta
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from dumpvault.archive.checksum import (
    compute_sha256,
    read_checksum_file,
    verify_checksum,
    write_checksum_file,
)
from dumpvault.archive.compressor import compress_command, decompress_command
from dumpvault.archive.locator import find_archive_candidates, locate_archive
from dumpvault.archive.naming import (
    ArchiveDescriptor,
    build_archive_name,
    compression_for_path,
    describe_new_archive,
)
from dumpvault.archive.permissions import apply_file_metadata, resolve_owner
from dumpvault.config import BackupConfig, Compression, DatabaseSelector
from dumpvault.exceptions import (
    EX_DATAERR,
    EX_NOINPUT,
    ArchiveNotFoundError,
    IntegrityError,
    NoArchiveFoundError,
    UnsupportedArchiveError,
)

NOW = datetime(2026, 10, 18, 2, 30, tzinfo=timezone.utc)


def _touch(path: Path, mtime_ns: int, content: bytes = b"x") -> Path:
    path.write_bytes(content)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


# ============================================================================
# Naming
# ============================================================================

def test_archive_name_with_prefix_and_db_list():
    config = BackupConfig(
        user="u",
        name_prefix="nightly",
        databases=DatabaseSelector.parse("a,b"),
        compression=Compression.GZIP,
    )

    assert build_archive_name(config, NOW) == "nightly-a+b-20261018.sql.gz"


def test_archive_name_all_databases_without_prefix():
    config = BackupConfig(user="u", compression=Compression.NONE)

    assert build_archive_name(config, NOW) == "all-databases-20261018.sql"


def test_archive_name_timestamp_is_utc():
    config = BackupConfig(user="u", date_format="%Y%m%dT%H%M")
    local = NOW.astimezone(timezone(timedelta(hours=-7)))

    assert build_archive_name(config, local) == "all-databases-20261018T0230.sql.zst"


def test_new_archive_descriptor(temp_dir: Path):
    config = BackupConfig(user="u", backups_dir=temp_dir, compression=Compression.BZIP2)
    archive = describe_new_archive(config, NOW)

    assert archive.path.parent == temp_dir
    assert archive.extension == ".sql.bz2"
    assert archive.checksum_path == temp_dir / (archive.name + ".sha256")
    assert archive.created_at == NOW


@pytest.mark.parametrize(
    "name,expected",
    [
        ("x.sql", Compression.NONE),
        ("x.sql.gz", Compression.GZIP),
        ("x.sql.bz2", Compression.BZIP2),
        ("x.sql.zst", Compression.ZSTD),
        ("x.sql.zst.sha256", None),
        ("x.tar.gz", None),
        (".sql", None),
    ],
)
def test_compression_for_path(name, expected):
    assert compression_for_path(name) is expected


def test_descriptor_rejects_unknown_extension(temp_dir: Path):
    with pytest.raises(UnsupportedArchiveError) as exc_info:
        ArchiveDescriptor.from_path(temp_dir / "dump.sql.xz")

    assert exc_info.value.exit_code == EX_DATAERR


# ============================================================================
# Compression stages
# ============================================================================

def test_compress_commands():
    base = BackupConfig(user="u", compression_threads=4)

    assert compress_command(base).argv == ["zstd", "-T4", "-q", "-f", "-19", "-"]
    assert compress_command(
        base.with_updates(compression=Compression.GZIP, compression_level=6)
    ).argv == ["gzip", "-c", "-f", "-6"]
    assert compress_command(base.with_updates(compression=Compression.BZIP2)).argv == [
        "bzip2", "-c", "-f", "-9",
    ]
    assert compress_command(base.with_updates(compression=Compression.NONE)) is None


def test_decompress_commands(temp_dir: Path):
    def argv(name):
        command = decompress_command(ArchiveDescriptor.from_path(temp_dir / name))
        return command.argv if command else None

    assert argv("a.sql.zst") == ["zstd", "-d", "-q", "-c"]
    assert argv("a.sql.gz") == ["gzip", "-dc"]
    assert argv("a.sql.bz2") == ["bzip2", "-dc"]
    assert argv("a.sql") is None


# ============================================================================
# Checksums
# ============================================================================

@pytest.mark.asyncio
async def test_checksum_file_format(temp_dir: Path):
    archive = temp_dir / "nightly-shop-20261018.sql.gz"
    archive.write_bytes(b"compressed bytes" * 1000)

    checksum_path = await write_checksum_file(archive)

    expected = hashlib.sha256(archive.read_bytes()).hexdigest()
    assert checksum_path.name == archive.name + ".sha256"
    assert checksum_path.read_text() == f"{expected}  {archive.name}\n"
    assert not (temp_dir / (checksum_path.name + ".tmp")).exists()


@pytest.mark.asyncio
async def test_compute_sha256_in_small_chunks(temp_dir: Path):
    data = os.urandom(10_000)
    path = temp_dir / "blob"
    path.write_bytes(data)

    assert await compute_sha256(path, chunk_size=7) == hashlib.sha256(data).hexdigest()


@pytest.mark.asyncio
async def test_verify_checksum_detects_bit_flip(temp_dir: Path):
    archive = temp_dir / "a.sql"
    archive.write_bytes(b"CREATE TABLE t (id INT);\n")
    await write_checksum_file(archive)

    assert await verify_checksum(archive)

    data = bytearray(archive.read_bytes())
    data[3] ^= 0x01
    archive.write_bytes(bytes(data))

    with pytest.raises(IntegrityError) as exc_info:
        await verify_checksum(archive)
    assert exc_info.value.exit_code == 1


@pytest.mark.asyncio
async def test_verify_accepts_sha256sum_full_path_format(temp_dir: Path):
    archive = temp_dir / "a.sql"
    archive.write_bytes(b"data")
    digest = hashlib.sha256(b"data").hexdigest()
    (temp_dir / "a.sql.sha256").write_text(f"{digest}  {archive}\n")

    assert await verify_checksum(archive) == digest
    assert await read_checksum_file(temp_dir / "a.sql.sha256") == (digest, str(archive))


@pytest.mark.asyncio
async def test_malformed_checksum_file(temp_dir: Path):
    archive = temp_dir / "a.sql"
    archive.write_bytes(b"data")
    (temp_dir / "a.sql.sha256").write_text("not a checksum\n")

    with pytest.raises(IntegrityError):
        await verify_checksum(archive)


# ============================================================================
# Discovery
# ============================================================================

def test_locate_newest_archive(temp_dir: Path):
    base = 1_700_000_000_000_000_000
    _touch(temp_dir / "nightly-shop-20261016.sql.gz", base)
    newest = _touch(temp_dir / "nightly-shop-20261018.sql.zst", base + 2_000_000_000)
    _touch(temp_dir / "nightly-shop-20261017.sql", base + 1_000_000_000)
    # Newer, but not archives or not ours
    _touch(temp_dir / "nightly-shop-20261018.sql.zst.sha256", base + 9_000_000_000)
    _touch(temp_dir / "other-shop-20261019.sql.gz", base + 9_000_000_000)
    _touch(temp_dir / "nightly-notes.txt", base + 9_000_000_000)

    config = BackupConfig(user="u", backups_dir=temp_dir, name_prefix="nightly")

    assert locate_archive(None, config) == newest
    assert locate_archive(temp_dir, config) == newest
    assert len(find_archive_candidates(temp_dir, "nightly")) == 3


def test_locate_tie_breaks_on_greatest_name(temp_dir: Path):
    mtime = 1_700_000_000_000_000_000
    _touch(temp_dir / "b-20261018.sql.gz", mtime)
    _touch(temp_dir / "c-20261018.sql.gz", mtime)
    _touch(temp_dir / "a-20261018.sql.gz", mtime)

    config = BackupConfig(user="u", backups_dir=temp_dir)

    assert locate_archive(None, config).name == "c-20261018.sql.gz"


def test_locate_explicit_file(temp_dir: Path):
    archive = _touch(temp_dir / "anything.sql.bz2", 1)
    config = BackupConfig(user="u", backups_dir=temp_dir / "elsewhere")

    assert locate_archive(str(archive), config) == archive


def test_locate_explicit_missing_file(temp_dir: Path):
    config = BackupConfig(user="u", backups_dir=temp_dir)

    with pytest.raises(ArchiveNotFoundError) as exc_info:
        locate_archive(temp_dir / "missing.sql.gz", config)
    assert exc_info.value.exit_code == EX_NOINPUT


def test_locate_no_candidate(temp_dir: Path):
    (temp_dir / "readme.txt").write_text("nothing here")
    config = BackupConfig(user="u", backups_dir=temp_dir, name_prefix="nightly")

    with pytest.raises(NoArchiveFoundError) as exc_info:
        locate_archive(None, config)
    assert exc_info.value.exit_code == EX_NOINPUT


def test_locate_missing_backups_dir_has_no_candidate(temp_dir: Path):
    config = BackupConfig(user="u", backups_dir=temp_dir / "never-created")

    with pytest.raises(NoArchiveFoundError):
        locate_archive(None, config)


# ============================================================================
# Best-effort metadata
# ============================================================================

def test_resolve_owner_fills_missing_side():
    assert resolve_owner(None, None) is None
    assert resolve_owner("1234", None) == (1234, os.getgid())
    assert resolve_owner(None, "99") == (os.getuid(), 99)


def test_chmod_applied(temp_dir: Path):
    path = temp_dir / "a.sql"
    path.write_bytes(b"x")
    config = BackupConfig(user="u", chmod_mode=0o600)

    warnings = apply_file_metadata([path], config)

    assert warnings == []
    assert (path.stat().st_mode & 0o777) == 0o600


def test_unknown_owner_is_a_warning_not_an_error(temp_dir: Path):
    path = temp_dir / "a.sql"
    path.write_bytes(b"x")
    config = BackupConfig(user="u", chown_uid="no-such-user-dumpvault", chmod_mode=0o640)

    warnings = apply_file_metadata([path], config)

    assert [w.action for w in warnings] == ["chown"]
    assert warnings[0].path == path
    # chmod still happens
    assert (path.stat().st_mode & 0o777) == 0o640


@pytest.mark.skipif(os.geteuid() == 0, reason="root may chown freely")
def test_unprivileged_chown_is_a_warning(temp_dir: Path):
    path = temp_dir / "a.sql"
    path.write_bytes(b"x")
    config = BackupConfig(user="u", chown_uid="0", chown_gid="0")

    warnings = apply_file_metadata([path], config)

    assert len(warnings) == 1
    assert warnings[0].action == "chown"


def test_failed_chmod_is_not_logged_as_applied(temp_dir: Path, monkeypatch):
    path = temp_dir / "a.sql"
    path.write_bytes(b"x")
    config = BackupConfig(user="u", chmod_mode=0o600)

    def refuse(*args, **kwargs):
        raise PermissionError("Operation not permitted")

    monkeypatch.setattr(os, "chmod", refuse)

    with capture_logs() as logs:
        warnings = apply_file_metadata([path], config)

    assert [w.action for w in warnings] == ["chmod"]
    events = [e["event"] for e in logs]
    assert "permissions_set" not in events
    assert "file_metadata_not_applied" in events


def test_applied_metadata_counts_only_changed_files(temp_dir: Path):
    present = temp_dir / "a.sql"
    present.write_bytes(b"x")
    config = BackupConfig(user="u", chmod_mode=0o644)

    with capture_logs() as logs:
        apply_file_metadata([present, temp_dir / "missing.sql"], config)

    applied = [e for e in logs if e["event"] == "permissions_set"]
    assert applied and applied[0]["files"] == 1
