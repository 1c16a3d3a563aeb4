import ctypes
import ctypes.util
import logging
from typing import Any, Sequence

from . import ExecutablePathError
from .provider import errno_text


logger = logging.getLogger(__name__)

CTL_KERN = 1


def load_libc() -> Any:
    return ctypes.CDLL(ctypes.util.find_library("c"), use_errno=True)


def allocate_buffer(size: int) -> ctypes.Array:
    try:
        return ctypes.create_string_buffer(size)
    except MemoryError as exc:
        raise ExecutablePathError("malloc failed", str(exc) or "out of memory") from exc


class SysctlQuery:
    """Two-step sysctl(3) read: ask for the size first, then fill a fresh buffer."""

    def __init__(self, libc: Any = None) -> None:
        self._libc = libc

    def _load_libc(self) -> Any:
        if self._libc is None:
            self._libc = load_libc()
        return self._libc

    def _sysctl(
        self,
        mib: Sequence[int],
        buffer: ctypes.Array | None,
        length: ctypes.c_size_t,
    ) -> int:
        libc = self._load_libc()
        mib_array = (ctypes.c_int * len(mib))(*mib)
        return libc.sysctl(mib_array, len(mib), buffer, ctypes.byref(length), None, 0)

    def read(self, mib: Sequence[int]) -> tuple[ctypes.Array, int]:
        length = ctypes.c_size_t(0)
        if self._sysctl(mib, None, length) != 0:
            raise ExecutablePathError("sysctl failed", errno_text())

        buffer = allocate_buffer(length.value)
        if self._sysctl(mib, buffer, length) != 0:
            raise ExecutablePathError("sysctl failed", errno_text())

        logger.debug("sysctl %s returned %d bytes", list(mib), length.value)
        return buffer, length.value
