import ctypes
import logging
import os
import stat
from typing import Mapping

from .provider import ExecutablePathProvider, strip_filename
from .sysctl import CTL_KERN, SysctlQuery


logger = logging.getLogger(__name__)

KERN_PROC_ARGS = 55
KERN_PROC_ARGV = 1


class OpenBSDArgvProvider(ExecutablePathProvider):
    """Rebuild the executable path from argv[0], since OpenBSD has no direct query.

    argv[0] is canonicalized when it already names a path, otherwise it is
    looked up on PATH. When nothing matches the result is an empty directory
    rather than an error; the candidates built from it simply fail to probe.
    """

    def __init__(
        self,
        query: SysctlQuery | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.query = query or SysctlQuery()
        self.environ = environ if environ is not None else os.environ

    def _argv0(self) -> str:
        buffer, _ = self.query.read((CTL_KERN, KERN_PROC_ARGS, os.getpid(), KERN_PROC_ARGV))
        # The kernel lays out a NULL-terminated char* array followed by the strings.
        argv = ctypes.cast(buffer, ctypes.POINTER(ctypes.c_char_p))
        return os.fsdecode(argv[0] or b"")

    def _search_path(self) -> list[str]:
        return [entry for entry in self.environ.get("PATH", "").split(":") if entry]

    def resolve_command(self, command: str) -> str | None:
        if command.startswith(("/", ".")):
            try:
                return os.path.realpath(command, strict=True)
            except OSError:
                return None

        for directory in self._search_path():
            candidate = f"{directory}/{command}"
            try:
                st = os.stat(candidate)
            except OSError:
                continue
            if st.st_mode & stat.S_IXUSR:
                return candidate

        logger.debug("%r not found on PATH", command)
        return None

    def executable_dir(self) -> str:
        resolved = self.resolve_command(self._argv0())
        if resolved is None:
            return ""
        return strip_filename(resolved)
