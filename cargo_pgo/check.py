"""`cargo pgo check`: verifies that the tools needed for PGO and BOLT are installed."""

from dataclasses import dataclass
from typing import Callable

from .bolt import LLVM_BOLT, MERGE_FDATA, llvm_bolt_install_hint
from .cli import make_table
from .exceptions import CargoPgoError
from .logger import log
from .pgo import find_llvm_profdata
from .toolchain import get_default_target, resolve_binary


@dataclass
class ToolStatus:
    name: str
    found: bool
    location: str
    required: bool


def _tool_status(name: str, lookup: Callable[[], object], required: bool) -> ToolStatus:
    try:
        return ToolStatus(name, True, str(lookup()), required)
    except CargoPgoError as e:
        return ToolStatus(name, False, str(e).splitlines()[0], required)


def collect_tool_status() -> list[ToolStatus]:
    return [
        _tool_status("rustc (host target)", get_default_target, required=True),
        _tool_status("llvm-profdata", find_llvm_profdata, required=True),
        _tool_status(LLVM_BOLT, lambda: resolve_binary(LLVM_BOLT), required=False),
        _tool_status(MERGE_FDATA, lambda: resolve_binary(MERGE_FDATA), required=False),
    ]


def environment_check() -> bool:
    """Prints the status of every tool and returns True if PGO can be used."""
    statuses = collect_tool_status()
    table = make_table(
        ["Tool", "Status", "Location"],
        [[s.name, "found" if s.found else "missing", s.location] for s in statuses],
    )
    log.info(f"Environment check:\n{table}")

    if not all(s.found for s in statuses if not s.required):
        log.warning(f"BOLT is not available. {llvm_bolt_install_hint()}")

    ok = all(s.found for s in statuses if s.required)
    if ok:
        log.info("Your environment is prepared for PGO")
    else:
        log.error("Your environment is not prepared for PGO")
    return ok
