"""Runs Cargo in release mode with injected RUSTFLAGS and JSON output."""

import os
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import TextIO

from .args import parse_cargo_args
from .exceptions import BuildError, CargoPgoError, ResolutionError
from .logger import log
from .messages import CompilerArtifact, Message, parse_stream, render_message
from .toolchain import get_default_target, run_command

RUSTFLAGS_ENV = "RUSTFLAGS"
MESSAGE_FORMAT = "json-diagnostic-rendered-ansi"


class CargoCommand(Enum):
    BUILD = "build"
    TEST = "test"
    RUN = "run"
    BENCH = "bench"

    def to_str(self) -> str:
        return self.value


@dataclass(frozen=True)
class BuildCommand:
    """A fully resolved Cargo invocation."""

    command: CargoCommand
    args: list[str]
    rustflags: str
    env: dict[str, str] = field(default_factory=dict)

    def argv(self, cargo: str) -> list[str]:
        return [cargo, self.command.to_str(), *self.args]


def _cargo() -> str:
    return os.getenv("CARGO", "cargo")


def compose_rustflags(flags: str) -> str:
    """Appends `flags` to the RUSTFLAGS inherited from the environment."""
    return f"{os.getenv(RUSTFLAGS_ENV, '')} {flags}"


def make_build_command(
    command: CargoCommand, flags: str, cargo_args: list[str]
) -> BuildCommand:
    parsed_args = parse_cargo_args(cargo_args)

    args = ["--release", "--message-format", MESSAGE_FORMAT]

    # --target is passed to avoid instrumenting build scripts
    # See https://doc.rust-lang.org/rustc/profile-guided-optimization.html#a-complete-cargo-workflow
    if not parsed_args.contains_target:
        try:
            default_target = get_default_target()
        except ResolutionError as e:
            raise ResolutionError(
                f"Unable to find default target triple for your platform: {e}"
            ) from e
        args.extend(["--target", default_target])

    args.extend(parsed_args.filtered)

    rustflags = compose_rustflags(flags)
    return BuildCommand(
        command=command,
        args=args,
        rustflags=rustflags,
        env={RUSTFLAGS_ENV: rustflags},
    )


def cargo_command(build_command: BuildCommand) -> subprocess.CompletedProcess:
    try:
        return run_command(build_command.argv(_cargo()), env=build_command.env)
    except OSError as e:
        raise BuildError(-1, f"Cannot execute `{_cargo()}`: {e}", "") from e


def cargo_command_with_flags(
    command: CargoCommand, flags: str, cargo_args: list[str]
) -> subprocess.CompletedProcess:
    """Runs `cargo <command>` in release mode with the provided RUSTFLAGS and arguments.

    The whole output is captured. If Cargo fails, the error carries its
    stderr and the diagnostics found in its JSON stdout.
    """
    build_command = make_build_command(command, flags, cargo_args)
    log.debug(f"Using RUSTFLAGS={build_command.rustflags!r}")

    output = cargo_command(build_command)
    if output.returncode != 0:
        try:
            transcript = cargo_json_output_to_string(output.stdout)
        except CargoPgoError as e:
            transcript = f"Could not parse Cargo stdout: {e}"
        raise BuildError(
            output.returncode,
            output.stderr.decode(errors="replace"),
            transcript,
        )
    return output


def cargo_json_output_to_string(output: bytes) -> str:
    """Renders the human readable messages of buffered Cargo JSON output."""
    messages = []
    for message in parse_stream(output):
        text = render_message(message)
        if text is not None:
            messages.append(text)
    return "".join(messages)


def handle_metadata_message(message: Message, stream: TextIO | None = None):
    """Forwards the text of a message to the console."""
    text = render_message(message)
    if text is None:
        return
    log.debug(f"{type(message).__name__} {text.rstrip()}")
    stream = stream or sys.stdout
    stream.write(text)
    stream.flush()


def get_artifact_kind(artifact: CompilerArtifact) -> str:
    """Returns a user-friendly name of an artifact kind."""
    for kind in artifact.target_kinds:
        if kind == "bin":
            return "binary"
        if kind == "bench":
            return "benchmark"
        if kind == "example":
            return "example"
    return "artifact"
