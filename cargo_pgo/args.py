"""Sanitizes user supplied Cargo arguments before they are forwarded."""

from dataclasses import dataclass, field

from .logger import log

RELEASE_FLAGS = ("--release", "-r")
MESSAGE_FORMAT_FLAG = "--message-format"
TARGET_FLAG = "--target"


@dataclass
class CargoArgs:
    filtered: list[str] = field(default_factory=list)
    contains_target: bool = False


def parse_cargo_args(cargo_args: list[str]) -> CargoArgs:
    """Filters arguments that cargo-pgo passes to Cargo by itself.

    * `--release` (or `-r`) is dropped, it is always added automatically.
    * `--message-format <value>` is dropped together with its value, the JSON
      format is required to parse the build output. `--message-format=<value>`
      is dropped as a single token.
    * `--target <triple>` and `--target=<triple>` are kept and recorded, so
      that no default target is injected.

    Everything else is kept in its original order. Arguments after `--` belong
    to the executed program and are never filtered.
    """
    args = CargoArgs()

    iterator = iter(cargo_args)
    for arg in iterator:
        flag, has_value, _ = arg.partition("=")
        if arg == "--":
            args.filtered.append(arg)
            args.filtered.extend(iterator)
        elif arg in RELEASE_FLAGS:
            log.warning(
                "Do not pass `--release` manually, it will be added automatically by `cargo-pgo`"
            )
        elif flag == MESSAGE_FORMAT_FLAG:
            log.warning(
                "Do not pass `--message-format` manually, it will be added automatically by `cargo-pgo`"
            )
            if not has_value:
                # Skip the flag value.
                next(iterator, None)
        elif flag == TARGET_FLAG:
            args.contains_target = True
            args.filtered.append(arg)
        else:
            args.filtered.append(arg)
    return args
