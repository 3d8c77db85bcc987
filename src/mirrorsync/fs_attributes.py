"""Platform primitives for the attributes mirrorsync replicates.

Windows keeps a read-only bit in the file attribute set and a DACL in the
security descriptor. POSIX has neither, so the read-only flag maps to the
owner write bit and the access-control descriptor maps to the permission
bits.
"""

from __future__ import annotations

from contextlib import contextmanager
import os
from pathlib import Path
import stat
import sys
from typing import Any, Iterator

IS_WINDOWS = sys.platform == "win32"

if IS_WINDOWS:
    import ctypes
    from ctypes import wintypes

    import win32security


POSIX_WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH

# Bits SetFileAttributesW accepts; the rest are reported but not settable.
SETTABLE_WINDOWS_ATTRIBUTES = (
    stat.FILE_ATTRIBUTE_ARCHIVE
    | stat.FILE_ATTRIBUTE_HIDDEN
    | stat.FILE_ATTRIBUTE_NOT_CONTENT_INDEXED
    | stat.FILE_ATTRIBUTE_OFFLINE
    | stat.FILE_ATTRIBUTE_READONLY
    | stat.FILE_ATTRIBUTE_SYSTEM
    | stat.FILE_ATTRIBUTE_TEMPORARY
)

FILE_WRITE_ATTRIBUTES = 0x0100
FILE_SHARE_ALL = 0x1 | 0x2 | 0x4
OPEN_EXISTING = 3
FILE_FLAG_BACKUP_SEMANTICS = 0x02000000
EPOCH_AS_FILETIME = 116444736000000000

if IS_WINDOWS:
    _kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    _kernel32.SetFileAttributesW.argtypes = [wintypes.LPCWSTR, wintypes.DWORD]
    _kernel32.SetFileAttributesW.restype = wintypes.BOOL
    _kernel32.CreateFileW.argtypes = [
        wintypes.LPCWSTR,
        wintypes.DWORD,
        wintypes.DWORD,
        wintypes.LPVOID,
        wintypes.DWORD,
        wintypes.DWORD,
        wintypes.HANDLE,
    ]
    _kernel32.CreateFileW.restype = wintypes.HANDLE
    _kernel32.SetFileTime.argtypes = [
        wintypes.HANDLE,
        ctypes.POINTER(wintypes.FILETIME),
        ctypes.POINTER(wintypes.FILETIME),
        ctypes.POINTER(wintypes.FILETIME),
    ]
    _kernel32.SetFileTime.restype = wintypes.BOOL
    _kernel32.CloseHandle.argtypes = [wintypes.HANDLE]
    _kernel32.CloseHandle.restype = wintypes.BOOL
    INVALID_HANDLE_VALUE = wintypes.HANDLE(-1).value


def is_dir_stat(st: os.stat_result) -> bool:
    return stat.S_ISDIR(st.st_mode)


def creation_time_ns(st: os.stat_result) -> int | None:
    birth_ns = getattr(st, "st_birthtime_ns", None)
    if birth_ns is not None:
        return birth_ns
    birth = getattr(st, "st_birthtime", None)
    if birth is not None:
        return int(birth * 1_000_000_000)
    if IS_WINDOWS:
        return st.st_ctime_ns
    return None


def stat_is_read_only(st: os.stat_result) -> bool:
    if IS_WINDOWS:
        return bool(st.st_file_attributes & stat.FILE_ATTRIBUTE_READONLY)
    return not st.st_mode & stat.S_IWUSR


def attribute_bits(st: os.stat_result) -> int:
    if IS_WINDOWS:
        return st.st_file_attributes
    return stat.S_IMODE(st.st_mode)


def is_read_only(path: Path) -> bool:
    return stat_is_read_only(os.stat(path))


def _set_windows_attributes(path: Path, attributes: int) -> None:
    attributes &= SETTABLE_WINDOWS_ATTRIBUTES
    if not attributes:
        attributes = stat.FILE_ATTRIBUTE_NORMAL
    if not _kernel32.SetFileAttributesW(str(path), attributes):
        raise ctypes.WinError(ctypes.get_last_error())


def set_read_only(path: Path, read_only: bool) -> None:
    st = os.stat(path)
    if IS_WINDOWS:
        if is_dir_stat(st):
            attributes = st.st_file_attributes
            if read_only:
                attributes |= stat.FILE_ATTRIBUTE_READONLY
            else:
                attributes &= ~stat.FILE_ATTRIBUTE_READONLY
            _set_windows_attributes(path, attributes)
        else:
            os.chmod(path, stat.S_IREAD if read_only else stat.S_IREAD | stat.S_IWRITE)
        return

    mode = stat.S_IMODE(st.st_mode)
    new_mode = mode & ~POSIX_WRITE_BITS if read_only else mode | stat.S_IWUSR
    if new_mode != mode:
        os.chmod(path, new_mode)


def clear_read_only(path: Path) -> bool:
    """Make ``path`` writable; returns whether it was read-only before."""
    if not is_read_only(path):
        return False
    set_read_only(path, False)
    return True


@contextmanager
def read_only_cleared(path: Path, reapply: bool) -> Iterator[None]:
    """Clear read-only on ``path`` for the body, then set it again if ``reapply``."""
    clear_read_only(path)
    try:
        yield
    finally:
        if reapply:
            set_read_only(path, True)


def apply_attribute_bits(path: Path, attributes: int) -> None:
    """Copy an attribute set onto ``path`` leaving it writable.

    The read-only part is applied separately with :func:`set_read_only`.
    """
    if IS_WINDOWS:
        _set_windows_attributes(path, attributes & ~stat.FILE_ATTRIBUTE_READONLY)
    else:
        os.chmod(path, stat.S_IMODE(attributes) | stat.S_IWUSR)


def _to_filetime(ns: int) -> Any:
    ticks = ns // 100 + EPOCH_AS_FILETIME
    return wintypes.FILETIME(ticks & 0xFFFFFFFF, ticks >> 32)


def _set_windows_creation_time(path: Path, created_ns: int) -> None:
    handle = _kernel32.CreateFileW(
        str(path),
        FILE_WRITE_ATTRIBUTES,
        FILE_SHARE_ALL,
        None,
        OPEN_EXISTING,
        FILE_FLAG_BACKUP_SEMANTICS,
        None,
    )
    if handle == INVALID_HANDLE_VALUE:
        raise ctypes.WinError(ctypes.get_last_error())
    try:
        created = _to_filetime(created_ns)
        if not _kernel32.SetFileTime(handle, ctypes.byref(created), None, None):
            raise ctypes.WinError(ctypes.get_last_error())
    finally:
        _kernel32.CloseHandle(handle)


def set_timestamps(path: Path, accessed_ns: int, modified_ns: int, created_ns: int | None = None) -> None:
    os.utime(path, ns=(accessed_ns, modified_ns))
    # POSIX offers no call to change a creation time.
    if IS_WINDOWS and created_ns is not None:
        _set_windows_creation_time(path, created_ns)


def read_security_descriptor(path: Path) -> Any:
    if IS_WINDOWS:
        return win32security.GetFileSecurity(str(path), win32security.DACL_SECURITY_INFORMATION)
    return stat.S_IMODE(os.stat(path).st_mode)


def apply_security_descriptor(path: Path, descriptor: Any) -> None:
    if IS_WINDOWS:
        win32security.SetFileSecurity(str(path), win32security.DACL_SECURITY_INFORMATION, descriptor)
        return
    os.chmod(path, descriptor)
