# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dumpvault Compressor - Choose the compression stage of a pipeline.

Compression runs in external gzip / bzip2 / zstd processes so it streams
alongside the dump and uses every core those tools can. "none" has no
stage at all: the dump writes straight into the archive.

Levels are handed over unchecked (zstd takes 1-22, gzip/bzip2 take 1-9);
the tool itself rejects values it does not support.
"""

from dumpvault.archive.naming import ArchiveDescriptor
from dumpvault.client import scrubbed_env
from dumpvault.config import BackupConfig, Compression
from dumpvault.pipeline import StageCommand


def compress_command(config: BackupConfig) -> StageCommand | None:
    """
    Compression stage reading SQL on stdin and writing to stdout.

    Returns:
        StageCommand, or None when compression is disabled
    """
    level = config.effective_compression_level

    if config.compression is Compression.GZIP:
        argv = ["gzip", "-c", "-f", f"-{level}"]
    elif config.compression is Compression.BZIP2:
        argv = ["bzip2", "-c", "-f", f"-{level}"]
    elif config.compression is Compression.ZSTD:
        argv = ["zstd", f"-T{config.compression_threads}", "-q", "-f", f"-{level}", "-"]
    else:
        return None

    return StageCommand(name="compress", argv=argv, env=scrubbed_env())


def decompress_command(archive: ArchiveDescriptor) -> StageCommand | None:
    """
    Decompression stage reading the archive on stdin and writing SQL to stdout.

    Returns:
        StageCommand, or None for plain .sql archives
    """
    argv = {
        Compression.ZSTD: ["zstd", "-d", "-q", "-c"],
        Compression.GZIP: ["gzip", "-dc"],
        Compression.BZIP2: ["bzip2", "-dc"],
    }.get(archive.compression)

    if argv is None:
        return None

    return StageCommand(name="decompress", argv=argv, env=scrubbed_env())
