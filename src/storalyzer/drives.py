"""Drive identifiers and the OS calls that describe drives."""

import os
import re
import shutil
import sys

import psutil

from storalyzer.exceptions import DriveEnumerationError, DriveSpaceError, InvalidDriveError
from storalyzer.models import DriveSpace

_DRIVE_LETTER = re.compile(r"^([A-Za-z])(:[/\\]?)?$")
_DRIVE_PATH = re.compile(r"^([A-Za-z]):[/\\](.*)$")


def normalize_drive(identifier: str) -> str:
    """
    Turn user input into a canonical scan root.

    A bare letter ("c"), "c:", "c:/" or "C:\\" all become "C:/". Absolute
    paths are accepted as scan roots so any subtree can be analysed.

    Raises:
        InvalidDriveError: If the input is neither a drive letter nor an absolute path
    """
    text = identifier.strip()

    match = _DRIVE_LETTER.match(text)
    if match:
        return f"{match.group(1).upper()}:/"

    match = _DRIVE_PATH.match(text)
    if match:
        rest = match.group(2).replace("\\", "/").rstrip("/")
        return f"{match.group(1).upper()}:/{rest}"

    if text and os.path.isabs(text):
        return os.path.normpath(text)

    raise InvalidDriveError(
        f"Invalid drive format: {identifier!r}. Enter a single letter (e.g. 'C'), "
        "a drive path (e.g. 'C:/') or an absolute folder path."
    )


def drive_key(drive: str) -> str:
    """Key under which a drive's scan is cached."""
    return os.path.normcase(os.path.normpath(drive))


def list_drives() -> list[str]:
    """
    List fixed drives.

    On Windows only local fixed disks are returned (no removable, network or
    optical drives); elsewhere the mount points of physical partitions.

    Raises:
        DriveEnumerationError: If the partitions cannot be listed
    """
    try:
        partitions = psutil.disk_partitions(all=False)
    except OSError as e:
        raise DriveEnumerationError(f"Could not list drives: {e}") from e

    drives: list[str] = []
    for part in partitions:
        if sys.platform == "win32" and "fixed" not in part.opts.split(","):
            continue
        try:
            drive = normalize_drive(part.mountpoint)
        except InvalidDriveError:
            continue
        if drive not in drives:
            drives.append(drive)

    return sorted(drives)


def get_drive_space(drive: str) -> DriveSpace:
    """
    Get total, used and free space for a drive.

    Args:
        drive: Normalized drive root

    Returns:
        DriveSpace; used space never goes below zero

    Raises:
        DriveSpaceError: If the OS query fails
    """
    try:
        usage = shutil.disk_usage(drive)
    except OSError as e:
        raise DriveSpaceError(f"Failed to analyze drive '{drive}': {e}") from e

    return DriveSpace(
        total_bytes=usage.total,
        used_bytes=max(usage.total - usage.free, 0),
        free_bytes=usage.free,
        mount_point=drive,
    )
