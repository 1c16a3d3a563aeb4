import ctypes
import logging
from typing import Any

from . import ExecutablePathError
from .provider import ExecutablePathProvider, strip_filename


logger = logging.getLogger(__name__)

MAX_PATH = 260


def _last_error_text() -> str:
    # get_last_error/FormatError only exist in Windows builds of ctypes.
    get_last_error = getattr(ctypes, "get_last_error", None)
    code = get_last_error() if get_last_error is not None else 0
    if not code:
        return "unknown error"
    return ctypes.FormatError(code).strip()


class WindowsModuleProvider(ExecutablePathProvider):
    """Look up the process image through GetModuleFileName.

    The long name is folded into its 8.3 short form so the directory stays
    ASCII-safe for code that builds paths from it. Volumes with 8.3 name
    generation disabled hand back the long name unchanged, so non-ASCII
    characters can still come through there; that case is logged.
    """

    def __init__(self, kernel32: Any = None) -> None:
        self._kernel32 = kernel32

    def _load_kernel32(self) -> Any:
        if self._kernel32 is None:
            self._kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)  # type: ignore[attr-defined]
        return self._kernel32

    def _get_module_file_name(self, buffer: ctypes.Array, size: int) -> int:
        return self._load_kernel32().GetModuleFileNameW(None, buffer, size)

    def _get_short_path_name(self, long_path: str, buffer: ctypes.Array, size: int) -> int:
        return self._load_kernel32().GetShortPathNameW(long_path, buffer, size)

    def executable_dir(self) -> str:
        long_path = ctypes.create_unicode_buffer(MAX_PATH + 1)
        if not self._get_module_file_name(long_path, MAX_PATH + 1):
            raise ExecutablePathError("GetModuleFileName() failed.", _last_error_text())

        short_path = ctypes.create_unicode_buffer(MAX_PATH + 1)
        if not self._get_short_path_name(long_path.value, short_path, MAX_PATH + 1):
            raise ExecutablePathError("GetShortPathName() failed.", _last_error_text())

        logger.debug("module file %s, short form %s", long_path.value, short_path.value)
        if not short_path.value.isascii():
            logger.warning("no ASCII short name for %s; 8.3 names may be disabled", short_path.value)
        return strip_filename(short_path.value, "/\\")
