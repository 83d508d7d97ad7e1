"""Cargo workspace discovery and profile directory management."""

import json
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from .exceptions import DirectoryError, WorkspaceError
from .logger import log
from .toolchain import run_command

PGO_PROFILES_DIR = "pgo-profiles"
BOLT_PROFILES_DIR = "bolt-profiles"


@dataclass(frozen=True)
class CargoWorkspace:
    root: Path
    target_dir: Path


def get_cargo_workspace(cwd: Path | None = None) -> CargoWorkspace:
    """Queries `cargo metadata` for the workspace root and target directory."""
    cargo = os.getenv("CARGO", "cargo")
    try:
        result = run_command(
            [cargo, "metadata", "--format-version", "1", "--no-deps"], cwd=cwd
        )
    except OSError as e:
        raise WorkspaceError(f"Cannot execute `{cargo} metadata`: {e}") from e

    if result.returncode != 0:
        raise WorkspaceError(
            f"`cargo metadata` failed (exit status {result.returncode})\n"
            f"{result.stderr.decode(errors='replace')}"
        )

    try:
        metadata = json.loads(result.stdout)
        return CargoWorkspace(
            root=Path(metadata["workspace_root"]),
            target_dir=Path(metadata["target_directory"]),
        )
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise WorkspaceError(f"Cannot parse `cargo metadata` output: {e}") from e


def get_pgo_directory(workspace: CargoWorkspace) -> Path:
    return workspace.target_dir / PGO_PROFILES_DIR


def get_bolt_directory(workspace: CargoWorkspace) -> Path:
    return workspace.target_dir / BOLT_PROFILES_DIR


def prepare_profile_directory(path: Path):
    """Makes sure that `path` exists and is empty.

    Profiles left over from a previous run would otherwise be mixed into the
    profiles gathered by the new run.
    """
    try:
        if path.exists():
            log.info("Profile directory already exists, it will be cleared")
            shutil.rmtree(path)
        path.mkdir(parents=True)
    except OSError as e:
        raise DirectoryError(f"Cannot prepare profile directory {path}: {e}") from e
