import os

from .provider import ExecutablePathProvider, strip_filename
from .sysctl import CTL_KERN, SysctlQuery


KERN_PROC = 14
KERN_PROC_PATHNAME = 12


class FreeBSDSysctlProvider(ExecutablePathProvider):
    """Ask the kernel process table for the executable path (KERN_PROC_PATHNAME)."""

    def __init__(self, query: SysctlQuery | None = None) -> None:
        self.query = query or SysctlQuery()

    def executable_dir(self) -> str:
        buffer, length = self.query.read((CTL_KERN, KERN_PROC, KERN_PROC_PATHNAME, -1))
        path = buffer.raw[:length].split(b"\0", 1)[0]
        return strip_filename(os.fsdecode(path))
