"""Chip database lookup.

A chipdb file is searched for in three places, highest priority first:

1. ``~/<prefix>/<subdir>/`` when the install prefix is home-relative
2. ``<prefix>/share/<subdir>/``
3. ``<executable dir>/../share/<subdir>/``

The first file that can be opened wins. When none can, the empty string is
returned and the caller decides how to report it.
"""

import logging
import os
from typing import Callable, Iterator, Mapping, NamedTuple

from chipdb.config import Config, LocatorSettings
from chipdb.runtime import ExecutablePathProvider, current_platform, get_executable_path_provider

from .probe import file_test_open


_SILENT_LOGGER = logging.getLogger("chipdb.locator.silent")
_SILENT_LOGGER.addHandler(logging.NullHandler())
_SILENT_LOGGER.propagate = False

SOURCE_HOME = "home"
SOURCE_PREFIX = "prefix"
SOURCE_EXECUTABLE = "executable"


class Candidate(NamedTuple):
    source: str
    path: str


def chipdb_filename(device: str) -> str:
    return f"chipdb-{device}.txt"


def home_directory(environ: Mapping[str, str], platform: str) -> str:
    if platform == "win32":
        profile = environ.get("USERPROFILE")
        if profile is not None:
            return profile
        drive = environ.get("HOMEDRIVE")
        path = environ.get("HOMEPATH")
        if drive is not None and path is not None:
            return drive + path
        return ""
    return environ.get("HOME", "")


class ChipDBLocator:
    def __init__(
        self,
        settings: LocatorSettings | None = None,
        provider: ExecutablePathProvider | None = None,
        logger: logging.Logger | None = None,
        probe: Callable[[str], bool] = file_test_open,
        environ: Mapping[str, str] | None = None,
        platform: str | None = None,
    ) -> None:
        self.settings = settings or Config.locator_settings()
        self._provider = provider
        self.logger = logger or _SILENT_LOGGER
        self.probe = probe
        self.environ = environ if environ is not None else os.environ
        self.platform = platform or current_platform()

    @property
    def provider(self) -> ExecutablePathProvider:
        if self._provider is None:
            self._provider = get_executable_path_provider()
        return self._provider

    def _home_candidate(self, device: str) -> str | None:
        prefix = self.settings.install_prefix
        if not prefix.startswith("~/"):
            return None
        home = home_directory(self.environ, self.platform)
        return f"{home}{prefix[1:]}/{self.settings.resource_subdir}/{chipdb_filename(device)}"

    def candidates(self, device: str) -> Iterator[Candidate]:
        """Yield the search locations in priority order.

        The executable directory is only resolved once the first two
        candidates have been consumed.
        """
        subdir = self.settings.resource_subdir
        filename = chipdb_filename(device)

        home_path = self._home_candidate(device)
        if home_path is not None:
            yield Candidate(SOURCE_HOME, home_path)

        yield Candidate(
            SOURCE_PREFIX,
            f"{self.settings.install_prefix}/share/{subdir}/{filename}",
        )

        exe_dir = self.provider.executable_dir()
        yield Candidate(SOURCE_EXECUTABLE, f"{exe_dir}../share/{subdir}/{filename}")

    def locate(self, device: str) -> str:
        for candidate in self.candidates(device):
            self.logger.info("Looking for chipdb '%s' at %s", device, candidate.path)
            if self.probe(candidate.path):
                return candidate.path
        return ""


def find_chipdb(device: str, **kwargs) -> str:
    return ChipDBLocator(**kwargs).locate(device)
