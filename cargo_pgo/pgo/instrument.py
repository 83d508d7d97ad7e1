"""`cargo pgo instrument`: builds binaries with PGO instrumentation."""

from pathlib import Path

from ..build import (
    CargoCommand,
    cargo_command_with_flags,
    get_artifact_kind,
    handle_metadata_message,
)
from ..cli import cli_format_path
from ..logger import log
from ..messages import BuildFinished, CompilerArtifact, parse_stream
from ..workspace import get_cargo_workspace, get_pgo_directory, prepare_profile_directory


def pgo_rustflags(pgo_dir: Path) -> str:
    return f"-Cprofile-generate={pgo_dir}"


def pgo_instrument(command: CargoCommand, cargo_args: list[str]) -> list[Path]:
    """Returns the paths of the instrumented executables."""
    workspace = get_cargo_workspace()
    pgo_dir = get_pgo_directory(workspace)

    prepare_profile_directory(pgo_dir)
    log.info(f"PGO profiles will be stored into {cli_format_path(pgo_dir)}")

    output = cargo_command_with_flags(command, pgo_rustflags(pgo_dir), cargo_args)

    executables = []
    for message in parse_stream(output.stdout):
        if isinstance(message, CompilerArtifact):
            if message.executable is not None:
                executables.append(message.executable)
                log.info(
                    f"PGO-instrumented {get_artifact_kind(message)} {message.target_name} "
                    f"built successfully. Now run {cli_format_path(message.executable)} "
                    "on your workload"
                )
        elif isinstance(message, BuildFinished):
            if message.success:
                log.info("PGO instrumentation build finished successfully")
            else:
                log.error("PGO instrumentation build has failed")
        else:
            handle_metadata_message(message)
    return executables
