import ctypes
import errno
import logging
import os
import sys

import pytest

from chipdb.runtime import ExecutablePathError, get_executable_path_provider, strip_filename
from chipdb.runtime.darwin_dyld import DarwinDyldProvider
from chipdb.runtime.freebsd_sysctl import FreeBSDSysctlProvider
from chipdb.runtime.openbsd_argv import OpenBSDArgvProvider
from chipdb.runtime.sandboxed import SandboxedProvider
from chipdb.runtime.self_link import SelfLinkProvider
from chipdb.runtime.sysctl import SysctlQuery
from chipdb.runtime.windows_module import WindowsModuleProvider


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX symlinks and mode bits")


class _FakeSysctl(SysctlQuery):
    def __init__(self, payload: bytes, fail_on_call: int | None = None) -> None:
        super().__init__(libc=object())
        self.payload = payload
        self.fail_on_call = fail_on_call
        self.calls: list[tuple[tuple[int, ...], bool]] = []

    def _sysctl(self, mib, buffer, length) -> int:
        self.calls.append((tuple(mib), buffer is None))
        if len(self.calls) == self.fail_on_call:
            ctypes.set_errno(errno.EPERM)
            return -1
        if buffer is not None:
            ctypes.memmove(buffer, self.payload, len(self.payload))
        length.value = len(self.payload)
        return 0


def test_strip_filename_keeps_trailing_separator() -> None:
    assert strip_filename("/usr/local/bin/icetime") == "/usr/local/bin/"
    assert strip_filename("/icetime") == "/"
    assert strip_filename("icetime") == ""
    assert strip_filename("") == ""
    assert strip_filename("C:\\tools\\bin\\icetime.exe", "/\\") == "C:\\tools\\bin\\"


@posix_only
def test_self_link_provider_trims_link_target(tmp_path) -> None:
    target = tmp_path / "build" / "bin" / "icetime"
    target.parent.mkdir(parents=True)
    target.write_text("", encoding="utf-8")
    link = tmp_path / "exe"
    os.symlink(str(target), str(link))

    provider = SelfLinkProvider(link_path=str(link))

    assert provider.executable_dir() == str(target.parent) + "/"


def test_self_link_provider_missing_link_is_fatal(tmp_path) -> None:
    provider = SelfLinkProvider(link_path=str(tmp_path / "no-such-link"))

    with pytest.raises(ExecutablePathError) as exc_info:
        provider.executable_dir()

    assert exc_info.value.message.startswith('readlink("')
    assert exc_info.value.details


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="host provider check for Linux")
def test_host_provider_returns_directory_with_separator() -> None:
    exe_dir = get_executable_path_provider().executable_dir()

    assert exe_dir
    assert exe_dir.endswith("/")
    assert os.path.isdir(exe_dir)


def test_freebsd_provider_queries_size_then_fills_buffer() -> None:
    query = _FakeSysctl(b"/usr/local/bin/icetime\0")

    provider = FreeBSDSysctlProvider(query=query)

    assert provider.executable_dir() == "/usr/local/bin/"
    assert query.calls == [((1, 14, 12, -1), True), ((1, 14, 12, -1), False)]


@pytest.mark.parametrize("failing_call", [1, 2])
def test_freebsd_provider_sysctl_failure_is_fatal(failing_call: int) -> None:
    provider = FreeBSDSysctlProvider(query=_FakeSysctl(b"/bin/icetime\0", failing_call))

    with pytest.raises(ExecutablePathError) as exc_info:
        provider.executable_dir()

    assert exc_info.value.message == "sysctl failed"
    assert exc_info.value.details == os.strerror(errno.EPERM)


def test_freebsd_provider_allocation_failure_is_fatal(monkeypatch) -> None:
    def _no_memory(_size):
        raise MemoryError

    monkeypatch.setattr("chipdb.runtime.sysctl.ctypes.create_string_buffer", _no_memory)
    provider = FreeBSDSysctlProvider(query=_FakeSysctl(b"/bin/icetime\0"))

    with pytest.raises(ExecutablePathError, match="malloc failed"):
        provider.executable_dir()


class _FakeDyld(DarwinDyldProvider):
    def __init__(self, payload: bytes, report_size: bool = True) -> None:
        super().__init__(libc=object())
        self.payload = payload
        self.report_size = report_size
        self.buffer_sizes: list[int] = []

    def _ns_get_executable_path(self, buffer, size) -> int:
        needed = len(self.payload) + 1
        self.buffer_sizes.append(0 if buffer is None else len(buffer))
        if buffer is None or len(buffer) < needed:
            size.value = needed if self.report_size else 0
            return -1
        buffer.value = self.payload
        return 0


def test_darwin_provider_grows_buffer_to_reported_size() -> None:
    provider = _FakeDyld(b"/Applications/IceStorm/bin/icetime")

    assert provider.executable_dir() == "/Applications/IceStorm/bin/"
    assert provider.buffer_sizes == [0, len(b"/Applications/IceStorm/bin/icetime") + 1]


def test_darwin_provider_doubles_buffer_without_size_hint() -> None:
    provider = _FakeDyld(b"/opt/bin/icetime", report_size=False)

    assert provider.executable_dir() == "/opt/bin/"
    assert provider.buffer_sizes == [0, 1, 2, 4, 8, 16, 32]


class _FakeKernel32(WindowsModuleProvider):
    def __init__(self, long_path: str, short_path: str, fail: str | None = None) -> None:
        super().__init__(kernel32=object())
        self.long_path = long_path
        self.short_path = short_path
        self.fail = fail
        self.short_path_requests: list[str] = []

    def _get_module_file_name(self, buffer, size) -> int:
        if self.fail == "module":
            return 0
        buffer.value = self.long_path
        return len(self.long_path)

    def _get_short_path_name(self, long_path, buffer, size) -> int:
        self.short_path_requests.append(long_path)
        if self.fail == "short":
            return 0
        buffer.value = self.short_path
        return len(self.short_path)


def test_windows_provider_uses_short_path_form() -> None:
    provider = _FakeKernel32(
        "C:\\Program Files\\IceStorm Tools\\bin\\icetime.exe",
        "C:\\PROGRA~1\\ICESTO~1\\bin\\icetime.exe",
    )

    assert provider.executable_dir() == "C:\\PROGRA~1\\ICESTO~1\\bin\\"
    assert provider.short_path_requests == ["C:\\Program Files\\IceStorm Tools\\bin\\icetime.exe"]


def test_windows_provider_logs_non_ascii_long_name(monkeypatch, caplog) -> None:
    monkeypatch.setattr(logging.getLogger("chipdb"), "propagate", True)
    caplog.set_level(logging.WARNING, logger="chipdb.runtime.windows_module")
    long_path = "C:\\Users\\J\u00f6rg\\tools\\icetime.exe"
    provider = _FakeKernel32(long_path, long_path)

    assert provider.executable_dir() == "C:\\Users\\J\u00f6rg\\tools\\"
    assert any("no ASCII short name" in record.getMessage() for record in caplog.records)


def test_windows_provider_ascii_short_name_is_quiet(monkeypatch, caplog) -> None:
    monkeypatch.setattr(logging.getLogger("chipdb"), "propagate", True)
    caplog.set_level(logging.WARNING, logger="chipdb.runtime.windows_module")
    provider = _FakeKernel32("C:\\Users\\J\u00f6rg\\icetime.exe", "C:\\Users\\JRG~1\\icetime.exe")

    assert provider.executable_dir() == "C:\\Users\\JRG~1\\"
    assert caplog.records == []


def test_windows_provider_accepts_forward_slashes() -> None:
    provider = _FakeKernel32("C:/msys64/usr/bin/icetime.exe", "C:/msys64/usr/bin/icetime.exe")

    assert provider.executable_dir() == "C:/msys64/usr/bin/"


@pytest.mark.parametrize(
    ("fail", "message"),
    [("module", "GetModuleFileName() failed."), ("short", "GetShortPathName() failed.")],
)
def test_windows_provider_query_failure_is_fatal(fail: str, message: str) -> None:
    provider = _FakeKernel32("C:\\bin\\icetime.exe", "C:\\bin\\icetime.exe", fail=fail)

    with pytest.raises(ExecutablePathError) as exc_info:
        provider.executable_dir()

    assert exc_info.value.message == message


class _FakeArgvQuery:
    def __init__(self, *args: bytes) -> None:
        pointer_size = ctypes.sizeof(ctypes.c_char_p)
        strings = b"".join(arg + b"\0" for arg in args)
        table_size = pointer_size * (len(args) + 1)
        self.buffer = ctypes.create_string_buffer(table_size + len(strings))
        base = ctypes.addressof(self.buffer)
        pointers = (ctypes.c_void_p * (len(args) + 1)).from_buffer(self.buffer)
        offset = base + table_size
        for index, arg in enumerate(args):
            pointers[index] = offset
            offset += len(arg) + 1
        pointers[len(args)] = None
        ctypes.memmove(base + table_size, strings, len(strings))
        self.mibs: list[tuple[int, ...]] = []

    def read(self, mib):
        self.mibs.append(tuple(mib))
        return self.buffer, len(self.buffer)


def _make_tool(directory, executable: bool):
    directory.mkdir(parents=True, exist_ok=True)
    tool = directory / "icetime"
    tool.write_text("#!/bin/sh\n", encoding="utf-8")
    tool.chmod(0o755 if executable else 0o644)
    return tool


def test_openbsd_provider_reads_argv0_from_kernel() -> None:
    query = _FakeArgvQuery(b"icetime", b"-d", b"hx8k")
    provider = OpenBSDArgvProvider(query=query, environ={})

    assert provider._argv0() == "icetime"
    assert query.mibs == [(1, 55, os.getpid(), 1)]


@posix_only
def test_openbsd_provider_searches_path_for_executable_entry(tmp_path) -> None:
    plain = tmp_path / "plain"
    _make_tool(plain, executable=False)
    tools = tmp_path / "tools"
    _make_tool(tools, executable=True)
    query = _FakeArgvQuery(b"icetime")

    provider = OpenBSDArgvProvider(query=query, environ={"PATH": f"{tmp_path / 'missing'}::{plain}:{tools}"})

    assert provider.executable_dir() == f"{tools}/"


@posix_only
def test_openbsd_provider_canonicalizes_path_like_argv0(tmp_path) -> None:
    tool = _make_tool(tmp_path / "build", executable=True)
    provider = OpenBSDArgvProvider(query=_FakeArgvQuery(os.fsencode(str(tool))), environ={})

    assert provider.executable_dir() == os.path.realpath(str(tool.parent)) + "/"


def test_openbsd_provider_without_match_returns_empty_directory(tmp_path) -> None:
    provider = OpenBSDArgvProvider(
        query=_FakeArgvQuery(b"icetime"),
        environ={"PATH": str(tmp_path)},
    )

    assert provider.executable_dir() == ""


def test_openbsd_provider_unresolvable_relative_argv0_returns_empty_directory() -> None:
    provider = OpenBSDArgvProvider(query=_FakeArgvQuery(b"./no/such/icetime"), environ={})

    assert provider.executable_dir() == ""


def test_openbsd_provider_without_path_variable_returns_empty_directory() -> None:
    provider = OpenBSDArgvProvider(query=_FakeArgvQuery(b"icetime"), environ={})

    assert provider.executable_dir() == ""


def test_sandboxed_provider_reports_root() -> None:
    assert SandboxedProvider().executable_dir() == "/"
