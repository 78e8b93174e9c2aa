# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for dumpvault.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""


def explain_missing_user_env() -> str:
    """
    Explain that the database user environment variable is missing.
    """

    return (
        "Database user is not configured. "
        "Set the MARIADB_USER environment variable or pass user=... to create_config()."
    )


def explain_invalid_compressor_env(value: str | None) -> str:
    """
    Explain that COMPRESSOR is not one of the supported choices.
    """

    return (
        f"Unsupported COMPRESSOR value: {value!r}. "
        "Expected one of: 'zst', 'gz', 'bz2', or 'none'."
    )


def explain_invalid_integer_env(name: str, value: str | None) -> str:
    """
    Explain that an integer-valued variable could not be parsed.
    """

    return f"Invalid {name} value: {value!r}. It must be an integer."


def explain_invalid_boolean_env(name: str, value: str | None) -> str:
    """
    Explain that a boolean-valued variable could not be parsed.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "Use 1/0, true/false, or yes/no."
    )


def explain_invalid_mode_env(value: str | None) -> str:
    """
    Explain that CHMOD_MODE is not an octal permission mode.
    """

    return (
        f"Invalid CHMOD_MODE value: {value!r}. "
        "It must be an octal permission mode such as 0640."
    )


def explain_invalid_timeout_env(value: str | None) -> str:
    """
    Explain that BACKUP_TIMEOUT is not a positive number of seconds.
    """

    return (
        f"Invalid BACKUP_TIMEOUT value: {value!r}. "
        "It must be a positive number of seconds, or unset for no timeout."
    )


def explain_unsupported_extension(path: str) -> str:
    """
    Explain that a restore target has an extension no decompressor handles.
    """

    return (
        f"Unsupported file extension for {path}; "
        "expected .sql, .sql.zst, .sql.gz or .sql.bz2."
    )


def explain_no_candidate(directory: str, prefix: str) -> str:
    """
    Explain that a directory scan found nothing to restore.
    """

    return f"No dump found in {directory} with BACKUP_NAME_PREFIX={prefix!r}."
