import ctypes
import logging
import os
from typing import Any

from .provider import ExecutablePathProvider, strip_filename
from .sysctl import allocate_buffer, load_libc


logger = logging.getLogger(__name__)


class DarwinDyldProvider(ExecutablePathProvider):
    """Use dyld's _NSGetExecutablePath, growing the buffer until the path fits."""

    def __init__(self, libc: Any = None) -> None:
        self._libc = libc

    def _ns_get_executable_path(self, buffer: ctypes.Array | None, size: ctypes.c_uint32) -> int:
        if self._libc is None:
            self._libc = load_libc()
        return self._libc._NSGetExecutablePath(buffer, ctypes.byref(size))

    def executable_dir(self) -> str:
        size = ctypes.c_uint32(0)
        buffer: ctypes.Array | None = None

        # A failed call reports the size it needs in `size`.
        while self._ns_get_executable_path(buffer, size) != 0:
            current = len(buffer) if buffer is not None else 0
            buffer = allocate_buffer(max(size.value, current * 2, 1))
            size.value = len(buffer)
            logger.debug("_NSGetExecutablePath retry with %d bytes", size.value)

        path = buffer.value if buffer is not None else b""
        return strip_filename(os.fsdecode(path))
