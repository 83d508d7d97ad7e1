"""`cargo pgo bolt instrument`: builds binaries and instruments them with BOLT."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, TextIO

from ..build import (
    CargoCommand,
    cargo_command_with_flags,
    get_artifact_kind,
    handle_metadata_message,
)
from ..cli import cli_format_path, make_table
from ..exceptions import InstrumentationError
from ..logger import log
from ..messages import BuildFinished, CompilerArtifact, Message, parse_stream
from ..toolchain import run_command
from ..workspace import (
    get_bolt_directory,
    get_cargo_workspace,
    prepare_profile_directory,
)
from . import BoltEnv, bolt_rustflags, find_bolt_env

INSTRUMENTED_SUFFIX = "-bolt-instrumented"
PROFILE_FILE_PREFIX = "profile"


@dataclass(frozen=True)
class InstrumentedArtifact:
    target_name: str
    kind: str
    original: Path
    instrumented: Path
    profile_prefix: Path

    @property
    def profile_dir(self) -> Path:
        return self.profile_prefix.parent


@dataclass
class InstrumentationResult:
    artifacts: list[InstrumentedArtifact] = field(default_factory=list)
    # None if Cargo did not report the end of the build.
    build_success: bool | None = None


def plan_instrumentation(
    artifact: CompilerArtifact, profile_dir: Path
) -> InstrumentedArtifact:
    """Computes where the instrumented binary and its profiles will be written.

    For `/out/myapp` and profile directory `/prof`, the instrumented binary is
    `/out/myapp-bolt-instrumented` and profiles are `/prof/myapp/profile.<pid>.fdata`.
    """
    executable = artifact.executable
    basename = executable.stem
    return InstrumentedArtifact(
        target_name=artifact.target_name,
        kind=get_artifact_kind(artifact),
        original=executable,
        instrumented=executable.parent / f"{basename}{INSTRUMENTED_SUFFIX}",
        profile_prefix=profile_dir / basename / PROFILE_FILE_PREFIX,
    )


def instrument_binary(bolt_env: BoltEnv, planned: InstrumentedArtifact):
    """Instruments a binary using BOLT.

    Artifacts with the same basename share one profile subdirectory.
    """
    try:
        planned.profile_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstrumentationError(
            f"Cannot create profile directory {planned.profile_dir}: {e}"
        ) from e

    args = [
        bolt_env.bolt,
        "-instrument",
        planned.original,
        # Each run of the instrumented binary writes its own profile file.
        "--instrumentation-file-append-pid",
        "--instrumentation-file",
        planned.profile_prefix,
        "-update-debug-sections",
        "-o",
        planned.instrumented,
    ]
    try:
        result = run_command(args)
    except OSError as e:
        raise InstrumentationError(f"Cannot execute {bolt_env.bolt}: {e}") from e

    if result.returncode != 0:
        raise InstrumentationError(
            f"BOLT instrumentation of {planned.original} failed "
            f"(exit status {result.returncode})\n"
            f"{result.stderr.decode(errors='replace')}"
        )


def instrument_artifacts(
    messages: Iterable[Message],
    bolt_env: BoltEnv,
    profile_dir: Path,
    stream: TextIO | None = None,
) -> InstrumentationResult:
    """Instruments every executable artifact found in the message stream.

    Artifacts are processed one at a time, in the order Cargo reported them.
    The first failure aborts the remaining ones.
    """
    result = InstrumentationResult()

    for message in messages:
        if isinstance(message, CompilerArtifact):
            if message.executable is None:
                continue
            log.info(
                f"Binary {message.target_name} built successfully. "
                "It will be now instrumented with BOLT."
            )
            planned = plan_instrumentation(message, profile_dir)
            instrument_binary(bolt_env, planned)
            result.artifacts.append(planned)
            log.info(
                f"Binary {message.target_name} instrumented successfully. "
                f"Now run {cli_format_path(planned.instrumented)} on your workload"
            )
        elif isinstance(message, BuildFinished):
            result.build_success = message.success
            if message.success:
                log.info("BOLT instrumentation build finished successfully")
            else:
                log.error("BOLT instrumentation build has failed")
        else:
            handle_metadata_message(message, stream)

    return result


def print_summary(result: InstrumentationResult):
    if not result.artifacts:
        log.warning("No executable artifacts were instrumented")
        return

    table = make_table(
        ["Target", "Kind", "Instrumented binary", "Profile path"],
        [
            [a.target_name, a.kind, str(a.instrumented), str(a.profile_prefix)]
            for a in result.artifacts
        ],
    )
    log.info(f"Instrumented artifacts:\n{table}")


def bolt_instrument(cargo_args: list[str]) -> InstrumentationResult:
    workspace = get_cargo_workspace()
    bolt_dir = get_bolt_directory(workspace)

    bolt_env = find_bolt_env()

    prepare_profile_directory(bolt_dir)
    log.info(f"BOLT profiles will be stored into {cli_format_path(bolt_dir)}")

    output = cargo_command_with_flags(CargoCommand.BUILD, bolt_rustflags(), cargo_args)

    result = instrument_artifacts(parse_stream(output.stdout), bolt_env, bolt_dir)
    print_summary(result)
    return result
