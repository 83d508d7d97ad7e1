"""Decoding of Cargo's `--message-format json` output.

Cargo writes one JSON object per line, tagged by a `reason` field. Lines that
are not JSON objects (e.g. output printed by build scripts or by `cargo run`)
are plain text. Only the message kinds cargo-pgo reacts to are modelled; any
other `reason` decodes to `UnknownMessage` so newer Cargo versions keep
working.

See https://doc.rust-lang.org/cargo/reference/external-tools.html#json-messages
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from jsonschema import validate, ValidationError

from .exceptions import DecodeError

COMPILER_ARTIFACT_SCHEMA = {
    "type": "object",
    "required": ["target"],
    "properties": {
        "target": {
            "type": "object",
            "required": ["name", "kind"],
            "properties": {
                "name": {"type": "string"},
                "kind": {"type": "array", "items": {"type": "string"}},
            },
        },
        "executable": {"type": ["string", "null"]},
    },
}

COMPILER_MESSAGE_SCHEMA = {
    "type": "object",
    "required": ["message"],
    "properties": {
        "message": {
            "type": "object",
            "required": ["message"],
            "properties": {
                "message": {"type": "string"},
                "rendered": {"type": ["string", "null"]},
                "level": {"type": "string"},
            },
        },
    },
}

BUILD_FINISHED_SCHEMA = {
    "type": "object",
    "required": ["success"],
    "properties": {"success": {"type": "boolean"}},
}


@dataclass(frozen=True)
class TextLine:
    line: str


@dataclass(frozen=True)
class CompilerMessage:
    message: str
    rendered: str | None = None
    level: str | None = None


@dataclass(frozen=True)
class CompilerArtifact:
    target_name: str
    target_kinds: list[str] = field(default_factory=list)
    executable: Path | None = None


@dataclass(frozen=True)
class BuildFinished:
    success: bool


@dataclass(frozen=True)
class UnknownMessage:
    reason: str


Message = TextLine | CompilerMessage | CompilerArtifact | BuildFinished | UnknownMessage


def _decode_record(reason: str, record: dict) -> Message:
    if reason == "compiler-artifact":
        validate(record, COMPILER_ARTIFACT_SCHEMA)
        executable = record.get("executable")
        return CompilerArtifact(
            target_name=record["target"]["name"],
            target_kinds=list(record["target"]["kind"]),
            executable=Path(executable) if executable else None,
        )
    if reason == "compiler-message":
        validate(record, COMPILER_MESSAGE_SCHEMA)
        message = record["message"]
        return CompilerMessage(
            message=message["message"],
            rendered=message.get("rendered"),
            level=message.get("level"),
        )
    if reason == "build-finished":
        validate(record, BUILD_FINISHED_SCHEMA)
        return BuildFinished(success=record["success"])
    return UnknownMessage(reason=reason)


def _parse_record(line: str) -> dict | None:
    """Returns the JSON object on `line` if it is a Cargo message, else None."""
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict) or not isinstance(record.get("reason"), str):
        return None
    return record


def parse_stream(output: bytes) -> Iterator[Message]:
    """Lazily decodes buffered Cargo output into messages, in emission order.

    A line is a Cargo message only if it is a JSON object with a string
    `reason`. Anything else, including text that merely starts with `{`, is
    a `TextLine`.

    Raises:
        DecodeError: A line is not valid UTF-8, or a message with a known
            `reason` does not match its expected shape. Decoding stops at the
            first such line.
    """
    for line_number, raw_line in enumerate(output.splitlines(), start=1):
        try:
            line = raw_line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Line {line_number} is not valid UTF-8: {e}") from e

        record = _parse_record(line) if line.lstrip().startswith("{") else None
        if record is None:
            yield TextLine(line)
            continue

        reason = record["reason"]
        try:
            yield _decode_record(reason, record)
        except ValidationError as e:
            raise DecodeError(
                f"Unexpected `{reason}` message on line {line_number}: {e.message}"
            ) from e


def render_message(message: Message) -> str | None:
    """Returns the human readable text of a message, if it has any."""
    if isinstance(message, TextLine):
        return message.line + "\n"
    if isinstance(message, CompilerMessage):
        if message.rendered is not None:
            return message.rendered
        return message.message + "\n"
    return None
