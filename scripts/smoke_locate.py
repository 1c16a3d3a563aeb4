#!/usr/bin/env python3
"""Run chipdb lookup smoke tests against throwaway install trees.

This script is intended for fast operator validation on a new host platform.
It runs `python -m chipdb` for each scenario and validates that:
1) the home override wins when the prefix is home-relative
2) the install prefix is used when no override exists
3) a missing device exits with status 1 and prints nothing on stdout
4) `exe-dir` reports the interpreter's own directory
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
import tempfile
from pathlib import Path


def _write_chipdb(directory: Path, device: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    chipdb = directory / f"chipdb-{device}.txt"
    chipdb.write_text(".device stub\n", encoding="utf-8")
    return chipdb


def _run_chipdb(args: list[str], home: Path, timeout_s: int) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    env["HOME"] = str(home)
    env["USERPROFILE"] = str(home)
    env.pop("CHIPDB_PREFIX", None)
    env.pop("CHIPDB_SUBDIR", None)
    cmd = [sys.executable, "-m", "chipdb", *args]
    return subprocess.run(cmd, env=env, check=False, capture_output=True, text=True, timeout=timeout_s)


def _check_home_override(root: Path, device: str, subdir: str, timeout_s: int) -> tuple[bool, str]:
    home = root / "home"
    expected = _write_chipdb(home / ".local" / subdir, device)
    proc = _run_chipdb(["locate", device, "--prefix", "~/.local", "--subdir", subdir], home, timeout_s)
    if proc.returncode != 0:
        return False, f"exit code {proc.returncode}: {proc.stderr.strip()}"
    if proc.stdout.strip() != str(expected):
        return False, f"got {proc.stdout.strip()!r}, expected {str(expected)!r}"
    return True, proc.stdout.strip()


def _check_install_prefix(root: Path, device: str, subdir: str, timeout_s: int) -> tuple[bool, str]:
    prefix = root / "usr"
    expected = _write_chipdb(prefix / "share" / subdir, device)
    proc = _run_chipdb(
        ["locate", device, "--prefix", str(prefix), "--subdir", subdir], root / "empty-home", timeout_s
    )
    if proc.returncode != 0:
        return False, f"exit code {proc.returncode}: {proc.stderr.strip()}"
    if proc.stdout.strip() != str(expected):
        return False, f"got {proc.stdout.strip()!r}, expected {str(expected)!r}"
    return True, proc.stdout.strip()


def _check_missing(root: Path, device: str, subdir: str, timeout_s: int) -> tuple[bool, str]:
    proc = _run_chipdb(
        ["locate", f"{device}-missing", "--prefix", str(root / "nowhere"), "--subdir", subdir],
        root / "empty-home",
        timeout_s,
    )
    if proc.returncode != 1:
        return False, f"exit code {proc.returncode}, expected 1"
    if proc.stdout.strip():
        return False, f"unexpected stdout {proc.stdout.strip()!r}"
    return True, "not found, exit 1"


def _check_exe_dir(root: Path, timeout_s: int) -> tuple[bool, str]:
    proc = _run_chipdb(["exe-dir"], root / "empty-home", timeout_s)
    if proc.returncode != 0:
        return False, f"exit code {proc.returncode}: {proc.stderr.strip()}"
    exe_dir = proc.stdout.strip()
    if not exe_dir.endswith(("/", "\\")):
        return False, f"{exe_dir!r} does not end with a separator"
    return True, exe_dir


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke-test chipdb lookup")
    parser.add_argument("--device", default="hx8k", help="Device name (default: hx8k)")
    parser.add_argument("--subdir", default="icebox", help="Resource subdirectory (default: icebox)")
    parser.add_argument(
        "--process-timeout",
        type=int,
        default=60,
        help="Hard timeout for each subprocess in seconds (default: 60)",
    )
    args = parser.parse_args()

    failures: list[str] = []
    with tempfile.TemporaryDirectory(prefix="chipdb-smoke-") as tmp:
        root = Path(tmp)
        scenarios = {
            "home override": lambda: _check_home_override(
                root / "home-case", args.device, args.subdir, args.process_timeout
            ),
            "install prefix": lambda: _check_install_prefix(
                root / "prefix-case", args.device, args.subdir, args.process_timeout
            ),
            "missing device": lambda: _check_missing(
                root / "missing-case", args.device, args.subdir, args.process_timeout
            ),
            "exe-dir": lambda: _check_exe_dir(root, args.process_timeout),
        }
        for name, check in scenarios.items():
            print(f"\n[smoke] {name}")
            try:
                ok, detail = check()
            except subprocess.TimeoutExpired:
                ok, detail = False, f"exceeded subprocess timeout ({args.process_timeout}s)"
            status = "PASS" if ok else "FAIL"
            print(f"[smoke] {status}: {detail}")
            if not ok:
                failures.append(f"{name}: {detail}")

    if failures:
        print("\nSmoke lookup failed:")
        for failure in failures:
            print(f"- {failure}")
        return 1

    print("\nSmoke lookup passed for all scenarios.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
