"""Helpers for running and locating Rust/LLVM toolchain executables."""

import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Mapping

from .exceptions import ResolutionError, ToolNotFoundError
from .logger import log

HOST_FIELD = "host: "


def _rustc() -> str:
    return os.getenv("RUSTC", "rustc")


def child_environment(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Returns a copy of the current environment with `overrides` applied."""
    env = dict(os.environ)
    if overrides:
        env.update(overrides)
    return env


def run_command(
    args: list[str | Path],
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess:
    """Runs a command to completion, capturing stdout and stderr as bytes.

    The exit status is not checked here; callers decide what a failure means.
    `env` holds overrides on top of the inherited environment.
    """
    args = [str(arg) for arg in args]
    log.debug(f"++ Exec [{cwd or Path.cwd()}]$ {shlex.join(args)}")
    return subprocess.run(
        args,
        cwd=str(cwd) if cwd else None,
        env=child_environment(env),
        stdin=subprocess.DEVNULL,
        capture_output=True,
        check=False,
    )


def resolve_binary(name: str | Path, hint: str | None = None) -> Path:
    """Finds an executable by name on PATH, or accepts an existing path."""
    found = shutil.which(str(name))
    if found:
        return Path(found)
    raise ToolNotFoundError(str(name), hint)


def get_default_target() -> str:
    """Tries to find the default target triple used for compiling on this host.

    Queries `rustc -vV` and returns the value of its `host: ` line.
    """
    try:
        result = run_command([_rustc(), "-vV"])
    except OSError as e:
        raise ResolutionError(f"Failed to run `{_rustc()} -vV`: {e}") from e

    output = result.stdout.decode(errors="replace")
    for line in output.splitlines():
        if line.startswith(HOST_FIELD):
            return line[len(HOST_FIELD) :]
    raise ResolutionError("Failed to parse target from rustc output.")


def get_rustc_sysroot() -> Path | None:
    """Returns the sysroot of the active Rust toolchain, or None if unknown."""
    try:
        result = run_command([_rustc(), "--print", "sysroot"])
    except OSError:
        return None
    if result.returncode != 0:
        return None
    sysroot = result.stdout.decode(errors="replace").strip()
    return Path(sysroot) if sysroot else None
