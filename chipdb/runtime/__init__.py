import sys

from chipdb.config import Config

from .provider import ExecutablePathProvider, strip_filename


class ExecutablePathError(Exception):
    """Raised when the running executable cannot be located (e.g., an OS query fails)."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


def current_platform() -> str:
    return Config.get("chipdb_platform") or sys.platform


def get_executable_path_provider(platform: str | None = None) -> ExecutablePathProvider:
    platform = platform or current_platform()

    if platform.startswith(("linux", "cygwin")):
        from .self_link import SelfLinkProvider

        return SelfLinkProvider()

    if platform.startswith("freebsd"):
        from .freebsd_sysctl import FreeBSDSysctlProvider

        return FreeBSDSysctlProvider()

    if platform == "darwin":
        from .darwin_dyld import DarwinDyldProvider

        return DarwinDyldProvider()

    if platform == "win32":
        from .windows_module import WindowsModuleProvider

        return WindowsModuleProvider()

    if platform.startswith("openbsd"):
        from .openbsd_argv import OpenBSDArgvProvider

        return OpenBSDArgvProvider()

    if platform in ("emscripten", "wasi"):
        from .sandboxed import SandboxedProvider

        return SandboxedProvider()

    raise ExecutablePathError(
        "Don't know how to determine process executable base path!",
        f"unsupported platform {platform!r}",
    )


__all__ = [
    "ExecutablePathError",
    "ExecutablePathProvider",
    "current_platform",
    "get_executable_path_provider",
    "strip_filename",
]
