# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for dumpvault tests.

The database tools are replaced by small shell scripts that record their
arguments and environment, emit a fixed SQL payload (mariadb-dump) or
capture what they are fed (mariadb). Real gzip/bzip2/zstd binaries are
used for compression.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
import structlog

TEST_PASSWORD = "s3cret-pw"

SQL_PAYLOAD = b"".join(
    [
        b"-- MariaDB dump 10.19\n",
        b"CREATE DATABASE IF NOT EXISTS `shop`;\n",
        b"USE `shop`;\n",
        b"CREATE TABLE `orders` (`id` int NOT NULL, `note` text);\n",
    ]
    + [f"INSERT INTO `orders` VALUES ({i},'order {i}');\n".encode() for i in range(2000)]
)


def requires_binary(name: str):
    """Skip a test when an external compressor is not installed."""
    return pytest.mark.skipif(shutil.which(name) is None, reason=f"{name} not installed")


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test (or the CLI) applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_tool(temp_dir: Path) -> Callable[[str, str], Path]:
    """Factory writing an executable /bin/sh script into a private bin dir."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def payload_file(temp_dir: Path) -> Path:
    path = temp_dir / "payload.sql"
    path.write_bytes(SQL_PAYLOAD)
    return path


@pytest.fixture
def fake_dump(make_tool, temp_dir: Path, payload_file: Path) -> Path:
    """mariadb-dump stand-in: records argv and MYSQL_PWD, prints the payload."""
    return make_tool(
        "mariadb-dump",
        f"""
printf '%s\\n' "$@" > "{temp_dir}/dump-args.txt"
printf '%s' "$MYSQL_PWD" > "{temp_dir}/dump-pwd.txt"
cat "{payload_file}"
""",
    )


@pytest.fixture
def failing_dump(make_tool, payload_file: Path) -> Path:
    """mariadb-dump stand-in that emits a partial dump and then fails."""
    return make_tool(
        "mariadb-dump-failing",
        f"""
head -c 500 "{payload_file}"
echo "mariadb-dump: Got error: 2002: Can't connect to server" >&2
exit 2
""",
    )


@pytest.fixture
def empty_dump(make_tool) -> Path:
    """mariadb-dump stand-in that succeeds without writing anything."""
    return make_tool("mariadb-dump-empty", "exit 0")


@pytest.fixture
def fake_client(make_tool, temp_dir: Path) -> Path:
    """mariadb stand-in: logs each call; -e calls exit, others capture stdin."""
    return make_tool(
        "mariadb",
        f"""
echo "$*" >> "{temp_dir}/client-calls.txt"
for arg in "$@"; do
  if [ "$arg" = "-e" ]; then
    exit 0
  fi
done
cat > "{temp_dir}/restored.sql"
""",
    )


@pytest.fixture
def failing_client(make_tool, temp_dir: Path) -> Path:
    """mariadb stand-in that rejects its input."""
    return make_tool(
        "mariadb-failing",
        f"""
echo "$*" >> "{temp_dir}/client-calls.txt"
cat > /dev/null
echo "ERROR 1064 (42000) at line 3: You have an error in your SQL syntax" >&2
exit 1
""",
    )


@pytest.fixture
def test_config(temp_dir: Path, fake_dump: Path, fake_client: Path):
    """Create a test configuration wired to the fake tools."""
    from dumpvault.config import BackupConfig, Compression, DatabaseSelector

    return BackupConfig(
        user="backup",
        password=TEST_PASSWORD,
        host="127.0.0.1",
        port=3306,
        databases=DatabaseSelector(("shop", "blog")),
        backups_dir=temp_dir / "backups",
        name_prefix="nightly",
        compression=Compression.GZIP,
        dump_binary=str(fake_dump),
        client_binary=str(fake_client),
    )


@pytest.fixture
def slow_dump(make_tool, payload_file: Path) -> Path:
    """mariadb-dump stand-in that emits part of a dump and then hangs."""
    return make_tool(
        "mariadb-dump-slow",
        f"""
head -c 500 "{payload_file}"
exec sleep 30
""",
    )
