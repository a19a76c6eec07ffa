"""Sandboxed file reads for attachments.

The file is opened once and every check, as well as the final read, goes
through that descriptor. The path string is never resolved a second time, so
swapping the file or a symlink after the open has no effect on what is read.
"""

from __future__ import annotations

import os
import stat
import sys
from dataclasses import dataclass
from typing import Iterable, Optional

from discord_opencode.log import get_logger

logger = get_logger(__name__)

MAX_FILE_BYTES = 8 * 1024 * 1024
DEFAULT_ALLOWED_PREFIXES = ("~/projects", "/tmp")
DELETED_MARKER = " (deleted)"
_READ_CHUNK = 1024 * 1024


@dataclass(frozen=True, slots=True)
class FileAccessResult:
    error: Optional[str] = None
    buffer: Optional[bytes] = None
    real_path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def normalize_prefix(prefix: str) -> str:
    """Canonicalize a configured prefix and drop trailing slashes."""
    return os.path.realpath(os.path.expanduser(prefix)).rstrip("/")


def is_path_allowed(real_path: str, allowed_prefixes: Iterable[str]) -> bool:
    """True if real_path equals a prefix or lies underneath one."""
    for prefix in allowed_prefixes:
        normalized = normalize_prefix(prefix)
        if real_path == normalized or real_path.startswith(f"{normalized}/"):
            return True
    return False


def validate_real_path(real_path: str) -> Optional[str]:
    if real_path.endswith(DELETED_MARKER):
        return "Error: File was deleted"
    return None


def validate_file_stats(st: os.stat_result, max_bytes: int = MAX_FILE_BYTES) -> Optional[str]:
    if not stat.S_ISREG(st.st_mode):
        return "Error: Not a regular file"
    if st.st_nlink == 0:
        return "Error: File was deleted"
    if st.st_nlink > 1:
        return f"Error: File has multiple hardlinks ({st.st_nlink}), refusing for security"
    if st.st_size > max_bytes:
        return _size_error(st.st_size, max_bytes)
    return None


def _size_error(size: int, max_bytes: int) -> str:
    max_mb = max_bytes / 1024 / 1024
    size_mb = size / 1024 / 1024
    return f"Error: File exceeds {max_mb:.0f}MB limit ({size_mb:.2f}MB)"


def descriptor_path(fd: int) -> str:
    """Return the kernel's path entry for an open descriptor.

    Uses /proc/self/fd on Linux and F_GETPATH on macOS. Raises OSError when
    neither is available.
    """
    proc_entry = f"/proc/self/fd/{fd}"
    if os.path.islink(proc_entry):
        return os.readlink(proc_entry)

    if sys.platform == "darwin":
        import fcntl

        raw = fcntl.fcntl(fd, fcntl.F_GETPATH, bytes(1024))
        return os.fsdecode(raw.split(b"\0", 1)[0])

    raise OSError("descriptor path lookup is not supported on this platform")


def _default_prefixes() -> list[str]:
    return [
        os.path.realpath(os.path.expanduser(p), strict=True) for p in DEFAULT_ALLOWED_PREFIXES
    ]


def _read_all(fd: int, max_bytes: int) -> bytes | str:
    """Read the descriptor to EOF. Returns an error string if it grows past max_bytes."""
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = os.read(fd, _READ_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            return _size_error(total, max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


def validate_file_access(
    file_path: str,
    allowed_prefixes: Optional[list[str]] = None,
    max_bytes: int = MAX_FILE_BYTES,
) -> FileAccessResult:
    """Open, validate, and read a file inside the sandbox.

    Every rejection returns a FileAccessResult whose ``error`` names the
    failing check. Content is read only after all checks pass.
    """
    resolved = os.path.abspath(os.path.expanduser(file_path))

    flags = os.O_RDONLY | getattr(os, "O_NONBLOCK", 0) | getattr(os, "O_CLOEXEC", 0)
    try:
        fd = os.open(resolved, flags)
    except OSError as e:
        return FileAccessResult(error=f"Error: Cannot open file: {e}")

    try:
        try:
            real_path = descriptor_path(fd)
        except OSError as e:
            return FileAccessResult(error=f"Error: Cannot resolve file path: {e}")

        if path_error := validate_real_path(real_path):
            return FileAccessResult(error=path_error)

        prefixes = allowed_prefixes
        if not prefixes:
            try:
                prefixes = _default_prefixes()
            except OSError as e:
                logger.error("allowed_prefixes_unresolvable", error=str(e))
                return FileAccessResult(
                    error="Error: Server configuration error - allowed paths not resolvable"
                )

        if not is_path_allowed(real_path, prefixes):
            logger.warning("file_access_denied", requested=file_path, real_path=real_path)
            return FileAccessResult(
                error=f"Error: File must be in allowed directory. Real path: {real_path}"
            )

        if stats_error := validate_file_stats(os.fstat(fd), max_bytes):
            return FileAccessResult(error=stats_error)

        content = _read_all(fd, max_bytes)
        if isinstance(content, str):
            return FileAccessResult(error=content)
        return FileAccessResult(buffer=content, real_path=real_path)
    finally:
        os.close(fd)
