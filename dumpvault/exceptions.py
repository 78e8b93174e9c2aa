# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dumpvault Exceptions - Custom exceptions for the dumpvault package.

Every exception carries the process exit status the CLI reports for it, so
automation can tell "nothing to restore" apart from "restore broke".
"""

# sysexits.h
EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66

EXIT_FAILURE = 1
EXIT_TIMEOUT = 124


class DumpVaultError(Exception):
    """Base exception for all dumpvault errors."""

    exit_code: int = EXIT_FAILURE

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DumpVaultError):
    """Raised when configuration is invalid or incomplete."""

    exit_code = EX_USAGE


class UnsupportedArchiveError(ConfigurationError):
    """Raised when an archive's extension maps to no known decompressor."""

    exit_code = EX_DATAERR


class NotFoundError(DumpVaultError):
    """Raised when there is nothing to restore from."""

    exit_code = EX_NOINPUT


class ArchiveNotFoundError(NotFoundError):
    """Raised when an explicitly requested archive does not exist."""

    pass


class NoArchiveFoundError(NotFoundError):
    """Raised when a directory scan finds no candidate archive."""

    pass


class IntegrityError(DumpVaultError):
    """Raised on checksum mismatch or when a dump came out empty."""

    pass


class StageFailure(DumpVaultError):
    """Raised when a pipeline stage exits non-zero."""

    def __init__(self, message: str, exit_code: int, details: dict | None = None):
        super().__init__(message, details)
        self.exit_code = exit_code


class BackupError(DumpVaultError):
    """Raised when backup bookkeeping (directories, files) fails."""

    pass


class RestoreError(DumpVaultError):
    """Raised when restore bookkeeping fails."""

    pass
