"""Entry point of the `cargo pgo` subcommand.

Cargo runs `cargo-pgo pgo <args>` for `cargo pgo <args>`:

  cargo pgo check
  cargo pgo instrument [build|test|run|bench] [cargo args...]
  cargo pgo optimize [build|test|run|bench] [cargo args...]
  cargo pgo bolt instrument [cargo args...]

Arguments that cargo-pgo does not recognize are forwarded to Cargo in order.
"""

import argparse
import sys

from . import __version__
from .bolt.instrument import bolt_instrument
from .build import CargoCommand
from .check import environment_check
from .exceptions import CargoPgoError
from .logger import log, set_log_level, setup_file_logging
from .pgo.instrument import pgo_instrument
from .pgo.optimize import pgo_optimize


def split_cargo_command(cargo_args: list[str]) -> tuple[CargoCommand, list[str]]:
    """Splits an optional leading Cargo subcommand off the forwarded arguments."""
    if cargo_args:
        for command in CargoCommand:
            if cargo_args[0] == command.to_str():
                return command, cargo_args[1:]
    return CargoCommand.BUILD, cargo_args


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cargo", allow_abbrev=False)
    subparsers = parser.add_subparsers(dest="cargo_subcommand", required=True)

    pgo = subparsers.add_parser(
        "pgo",
        help="Profile-guided and BOLT optimization of Cargo binaries",
        allow_abbrev=False,
    )
    pgo.add_argument("--version", action="version", version=__version__)
    pgo.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print debug output, including executed commands",
    )
    pgo.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write log output into this file",
    )

    pgo_commands = pgo.add_subparsers(dest="command", required=True)
    pgo_commands.add_parser(
        "check",
        help="Check that your environment is prepared for PGO and BOLT",
        allow_abbrev=False,
    )
    pgo_commands.add_parser(
        "instrument",
        help="Run `cargo build` with instrumentation to prepare for PGO",
        allow_abbrev=False,
    )
    pgo_commands.add_parser(
        "optimize",
        help="Build an optimized version of a binary using generated PGO profiles",
        allow_abbrev=False,
    )

    bolt = pgo_commands.add_parser(
        "bolt", help="Optimization using BOLT", allow_abbrev=False
    )
    bolt_commands = bolt.add_subparsers(dest="bolt_command", required=True)
    bolt_commands.add_parser(
        "instrument",
        help="Run `cargo build` with instrumentation to prepare for BOLT optimization",
        allow_abbrev=False,
    )
    return parser


def run(args: argparse.Namespace, cargo_args: list[str]) -> int:
    if args.command == "check":
        return 0 if environment_check() else 1
    if args.command == "instrument":
        command, cargo_args = split_cargo_command(cargo_args)
        pgo_instrument(command, cargo_args)
        return 0
    if args.command == "optimize":
        command, cargo_args = split_cargo_command(cargo_args)
        pgo_optimize(command, cargo_args)
        return 0
    if args.command == "bolt" and args.bolt_command == "instrument":
        bolt_instrument(cargo_args)
        return 0
    raise AssertionError(f"Unhandled command {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args, cargo_args = parser.parse_known_args(argv)

    if args.verbose:
        set_log_level("DEBUG")
    if args.log_file:
        setup_file_logging(args.log_file)

    try:
        return run(args, cargo_args)
    except CargoPgoError as e:
        print(str(e).rstrip("\n"), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        log.warning("Execution interrupted by user")
        raise


if __name__ == "__main__":
    sys.exit(main())
