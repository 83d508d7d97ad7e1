"""Post-link binary optimization with LLVM BOLT."""

from dataclasses import dataclass
from pathlib import Path

from ..toolchain import resolve_binary

LLVM_BOLT = "llvm-bolt"
MERGE_FDATA = "merge-fdata"


def llvm_bolt_install_hint() -> str:
    return "Build LLVM with BOLT and add its `bin` directory to PATH."


def bolt_rustflags() -> str:
    # BOLT needs relocations to be kept in the linked binary.
    return "-C link-args=-Wl,-q"


@dataclass(frozen=True)
class BoltEnv:
    bolt: Path


def find_bolt_env() -> BoltEnv:
    """Locates `llvm-bolt`.

    Raises:
        ToolNotFoundError: `llvm-bolt` is not on PATH.
    """
    return BoltEnv(bolt=resolve_binary(LLVM_BOLT, llvm_bolt_install_hint()))
