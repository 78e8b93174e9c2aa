# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive helpers - Naming, compression stages, checksums, file metadata, discovery.
"""

from dumpvault.archive.naming import (
    ArchiveDescriptor,
    CHECKSUM_SUFFIX,
    build_archive_name,
    describe_new_archive,
    compression_for_path,
)

from dumpvault.archive.compressor import (
    compress_command,
    decompress_command,
)

from dumpvault.archive.checksum import (
    compute_sha256,
    write_checksum_file,
    verify_checksum,
)

from dumpvault.archive.permissions import (
    BestEffortWarning,
    apply_file_metadata,
)

from dumpvault.archive.locator import (
    locate_archive,
    find_archive_candidates,
)

__all__ = [
    # Naming
    "ArchiveDescriptor",
    "CHECKSUM_SUFFIX",
    "build_archive_name",
    "describe_new_archive",
    "compression_for_path",
    # Compression stages
    "compress_command",
    "decompress_command",
    # Checksums
    "compute_sha256",
    "write_checksum_file",
    "verify_checksum",
    # File metadata
    "BestEffortWarning",
    "apply_file_metadata",
    # Discovery
    "locate_archive",
    "find_archive_candidates",
]
