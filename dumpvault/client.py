# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Argument contract for the MariaDB command-line tools.

Builds the mariadb-dump and mariadb invocations used by the pipelines.
Credentials go on the command line as the user name only; the password is
placed in the child's environment as MYSQL_PWD so it never shows up in
process listings or logged commands.
"""

import os
from typing import Dict, List

from dumpvault.config import BackupConfig
from dumpvault.pipeline import StageCommand

DUMP_OPTIONS = [
    "--single-transaction",
    "--quick",
    "--routines",
    "--triggers",
    "--events",
    "--default-character-set=utf8mb4",
]


SECRET_ENV_VARS = ("MARIADB_PASSWORD", "MYSQL_PWD")


def scrubbed_env() -> Dict[str, str]:
    """Environment for non-database stages: the current one minus secrets."""
    return {k: v for k, v in os.environ.items() if k not in SECRET_ENV_VARS}


def child_env(config: BackupConfig) -> Dict[str, str]:
    """Environment for a database tool: the current one plus MYSQL_PWD."""
    env = scrubbed_env()
    if config.password:
        env["MYSQL_PWD"] = config.password
    return env


def _connection_args(config: BackupConfig) -> List[str]:
    return [
        f"--host={config.host}",
        f"--port={config.port}",
        f"--user={config.user}",
    ]


def dump_command(config: BackupConfig) -> StageCommand:
    """mariadb-dump writing the selected databases to stdout."""
    argv = [
        config.dump_binary,
        *_connection_args(config),
        *DUMP_OPTIONS,
        *config.databases.dump_args(),
    ]
    return StageCommand(name="dump", argv=argv, env=child_env(config))


def restore_command(config: BackupConfig, database: str | None = None) -> StageCommand:
    """mariadb reading SQL from stdin, optionally into ``database``."""
    argv = [config.client_binary, *_connection_args(config)]
    if database:
        argv.append(database)
    return StageCommand(name="restore", argv=argv, env=child_env(config))


def quote_identifier(name: str) -> str:
    """Backtick-quote a MariaDB identifier, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


def create_database_command(config: BackupConfig, database: str) -> StageCommand:
    """Idempotent CREATE DATABASE for a restore target."""
    statement = (
        f"CREATE DATABASE IF NOT EXISTS {quote_identifier(database)} "
        "/*!40100 DEFAULT CHARACTER SET utf8mb4 */;"
    )
    argv = [config.client_binary, *_connection_args(config), "-e", statement]
    return StageCommand(name="create-database", argv=argv, env=child_env(config))
