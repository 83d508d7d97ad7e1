"""Profile-guided optimization with rustc's LLVM instrumentation."""

from pathlib import Path

from ..exceptions import ResolutionError, ToolNotFoundError
from ..toolchain import get_default_target, get_rustc_sysroot, resolve_binary

LLVM_PROFDATA = "llvm-profdata"


def llvm_profdata_install_hint() -> str:
    return "Try installing `llvm-profdata` using `rustup component add llvm-tools-preview`."


def find_llvm_profdata() -> Path:
    """Locates `llvm-profdata` on PATH or inside the active Rust toolchain."""
    try:
        return resolve_binary(LLVM_PROFDATA)
    except ToolNotFoundError:
        pass

    # rustup installs llvm-tools-preview next to the target libraries.
    sysroot = get_rustc_sysroot()
    if sysroot is not None:
        try:
            host = get_default_target()
        except ResolutionError:
            host = None
        if host:
            candidate = sysroot / "lib" / "rustlib" / host / "bin" / LLVM_PROFDATA
            if candidate.is_file():
                return candidate

    raise ToolNotFoundError(LLVM_PROFDATA, llvm_profdata_install_hint())
