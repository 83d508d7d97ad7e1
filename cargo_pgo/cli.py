"""Formatting helpers for user facing output."""

from pathlib import Path

from prettytable import PrettyTable


def cli_format_path(path: Path | str) -> str:
    return f"`{path}`"


def make_table(field_names: list[str], rows: list[list[str]]) -> PrettyTable:
    table = PrettyTable(field_names)
    table.align = "l"
    for row in rows:
        table.add_row(row)
    return table
