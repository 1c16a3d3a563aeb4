import logging
import os

from . import ExecutablePathError
from .provider import ExecutablePathProvider, strip_filename


logger = logging.getLogger(__name__)

_SELF_EXE_LINK = "/proc/self/exe"


class SelfLinkProvider(ExecutablePathProvider):
    """Resolve the executable through the kernel's self-exe symlink (Linux, Cygwin)."""

    def __init__(self, link_path: str = _SELF_EXE_LINK) -> None:
        self.link_path = link_path

    def executable_dir(self) -> str:
        try:
            target = os.readlink(self.link_path)
        except OSError as exc:
            raise ExecutablePathError(
                f'readlink("{self.link_path}") failed',
                exc.strerror or str(exc),
            ) from exc

        logger.debug("%s points at %s", self.link_path, target)
        return strip_filename(target)
