# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Best-effort ownership and permission changes for finished archives.

A backup that reached this point is already good. A chown or chmod that
fails here (typically an unprivileged process asked to chown) comes back
as a BestEffortWarning value and is logged; it is never raised and never
changes the run's outcome.
"""

import grp
import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

import structlog

from dumpvault.config import BackupConfig

logger = structlog.get_logger()


@dataclass(frozen=True)
class BestEffortWarning:
    """A metadata change that could not be applied."""

    action: str  # "chown" | "chmod"
    path: Path
    error: str


def _resolve_uid(value: str) -> int:
    if value.isdigit():
        return int(value)
    return pwd.getpwnam(value).pw_uid


def _resolve_gid(value: str) -> int:
    if value.isdigit():
        return int(value)
    return grp.getgrnam(value).gr_gid


def resolve_owner(uid: str | None, gid: str | None) -> Tuple[int, int] | None:
    """
    Turn configured owner values into numeric ids.

    When only one of uid/gid is set the other falls back to the current
    process's id.

    Returns:
        (uid, gid), or None when no ownership change is configured

    Raises:
        KeyError: If a user or group name does not exist
    """
    if uid is None and gid is None:
        return None
    resolved_uid = _resolve_uid(uid) if uid is not None else os.getuid()
    resolved_gid = _resolve_gid(gid) if gid is not None else os.getgid()
    return resolved_uid, resolved_gid


def apply_file_metadata(paths: Iterable[Path], config: BackupConfig) -> List[BestEffortWarning]:
    """
    Apply the configured owner and mode to each existing path.

    Returns:
        Warnings for every change that failed (empty when all succeeded)
    """
    targets = [p for p in paths if p.exists()]
    warnings: List[BestEffortWarning] = []

    if config.chown_uid is not None or config.chown_gid is not None:
        try:
            owner = resolve_owner(config.chown_uid, config.chown_gid)
        except KeyError as e:
            owner = None
            for path in targets:
                warnings.append(BestEffortWarning("chown", path, f"unknown owner: {e}"))

        if owner is not None:
            changed = []
            for path in targets:
                try:
                    os.chown(path, *owner)
                except OSError as e:
                    warnings.append(BestEffortWarning("chown", path, str(e)))
                else:
                    changed.append(path)
            if changed:
                logger.info("ownership_set", owner=f"{owner[0]}:{owner[1]}", files=len(changed))

    if config.chmod_mode is not None:
        changed = []
        for path in targets:
            try:
                os.chmod(path, config.chmod_mode)
            except OSError as e:
                warnings.append(BestEffortWarning("chmod", path, str(e)))
            else:
                changed.append(path)
        if changed:
            logger.info("permissions_set", mode=f"{config.chmod_mode:04o}", files=len(changed))

    for warning in warnings:
        logger.warning(
            "file_metadata_not_applied",
            action=warning.action,
            path=str(warning.path),
            error=warning.error,
        )

    return warnings
