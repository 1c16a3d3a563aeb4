import ctypes
import os
from abc import ABC, abstractmethod


def strip_filename(path: str, separators: str = "/") -> str:
    """Drop everything after the last separator, keeping the separator itself.

    A path without any separator trims down to the empty string.
    """
    end = len(path)
    while end > 0 and path[end - 1] not in separators:
        end -= 1
    return path[:end]


def errno_text(errno_value: int | None = None) -> str:
    if errno_value is None:
        errno_value = ctypes.get_errno()
    return os.strerror(errno_value)


class ExecutablePathProvider(ABC):
    @abstractmethod
    def executable_dir(self) -> str:
        """Return the directory holding the running executable, ending in a separator."""
        raise NotImplementedError

    @property
    def name(self) -> str:
        return type(self).__name__
