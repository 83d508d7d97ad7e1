"""`cargo pgo optimize`: merges gathered profiles and builds optimized binaries."""

from pathlib import Path

from ..build import (
    CargoCommand,
    cargo_command_with_flags,
    get_artifact_kind,
    handle_metadata_message,
)
from ..cli import cli_format_path
from ..exceptions import ProfileError
from ..logger import log
from ..messages import BuildFinished, CompilerArtifact, parse_stream
from ..toolchain import run_command
from ..workspace import get_cargo_workspace, get_pgo_directory
from . import find_llvm_profdata

MERGED_PROFILE_NAME = "merged.profdata"


def pgo_optimize_rustflags(profile: Path) -> str:
    return f"-Cprofile-use={profile} -Cllvm-args=-pgo-warn-missing-function"


def gather_profiles(pgo_dir: Path) -> list[Path]:
    """Returns the raw profiles written by instrumented binaries, sorted by name."""
    if not pgo_dir.is_dir():
        return []
    return sorted(p for p in pgo_dir.glob("*.profraw") if p.is_file())


def merge_profiles(llvm_profdata: Path, pgo_dir: Path) -> Path:
    """Merges all `.profraw` files in `pgo_dir` into a single `.profdata` file."""
    profiles = gather_profiles(pgo_dir)
    if not profiles:
        raise ProfileError(
            f"No profiles were found in {pgo_dir}. "
            "Did you execute your instrumented program?"
        )

    total_size = sum(p.stat().st_size for p in profiles)
    log.info(
        f"Merging {len(profiles)} PGO profile(s) ({total_size} bytes) "
        f"from {cli_format_path(pgo_dir)}"
    )

    merged = pgo_dir / MERGED_PROFILE_NAME
    try:
        result = run_command([llvm_profdata, "merge", "-o", merged, *profiles])
    except OSError as e:
        raise ProfileError(f"Cannot execute {llvm_profdata}: {e}") from e
    if result.returncode != 0:
        raise ProfileError(
            f"Merging of PGO profiles failed (exit status {result.returncode})\n"
            f"{result.stderr.decode(errors='replace')}"
        )

    log.info(f"Merged PGO profile stored into {cli_format_path(merged)}")
    return merged


def pgo_optimize(command: CargoCommand, cargo_args: list[str]) -> list[Path]:
    """Returns the paths of the optimized executables."""
    workspace = get_cargo_workspace()
    pgo_dir = get_pgo_directory(workspace)

    llvm_profdata = find_llvm_profdata()
    merged = merge_profiles(llvm_profdata, pgo_dir)

    output = cargo_command_with_flags(
        command, pgo_optimize_rustflags(merged), cargo_args
    )

    executables = []
    for message in parse_stream(output.stdout):
        if isinstance(message, CompilerArtifact):
            if message.executable is not None:
                executables.append(message.executable)
                log.info(
                    f"PGO-optimized {get_artifact_kind(message)} {message.target_name} "
                    f"built successfully: {cli_format_path(message.executable)}"
                )
        elif isinstance(message, BuildFinished):
            if message.success:
                log.info("PGO optimized build finished successfully")
            else:
                log.error("PGO optimized build has failed")
        else:
            handle_metadata_message(message)
    return executables
