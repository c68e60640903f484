"""Helpers for turning package manager output into records."""

from __future__ import annotations

import json
import re
from typing import Any

from zap.core.errors import BackendParseError
from zap.core.models import BackendId

ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]|\x1b\][^\x07]*\x07")
RULE_RE = re.compile(r"^[\s\-|+]*-{3,}[\s\-|+]*$")
# one frame of the \r-driven progress spinner winget draws before its table
SPINNER_RE = re.compile(r"^\s*[-\\|/]\s*$")


def strip_ansi(text: str) -> str:
    """Remove terminal colour and cursor sequences."""
    return ANSI_RE.sub("", text)


def clean_lines(text: str) -> list[str]:
    """Strip ANSI codes and trailing whitespace; drop blank and spinner lines."""
    lines = []
    for raw in strip_ansi(text).replace("\r", "\n").splitlines():
        line = raw.rstrip()
        if line.strip() and not SPINNER_RE.match(line):
            lines.append(line)
    return lines


def load_json(text: str, backend: BackendId) -> Any:
    """Parse JSON output, raising BackendParseError on garbage.

    Args:
        text: Raw command output.
        backend: Backend that produced it, for diagnostics.

    Returns:
        The decoded JSON value.
    """
    try:
        return json.loads(strip_ansi(text))
    except json.JSONDecodeError as e:
        raise BackendParseError(
            f"Invalid JSON from {backend.value}: {e.msg}",
            backend=backend.value,
            raw_output=text,
        ) from e


def parse_key_values(text: str, sep: str = ":") -> dict[str, str]:
    """Parse ``Key: value`` blocks into a dict.

    Only the first block is read (blank line terminates it when a key has
    already been seen). Indented continuation lines are appended to the
    previous value. Keys are kept verbatim; the first occurrence wins.
    """
    data: dict[str, str] = {}
    last_key: str | None = None
    for raw in strip_ansi(text).splitlines():
        if not raw.strip():
            if data:
                break
            continue
        if raw[:1].isspace() and last_key is not None and sep not in raw:
            data[last_key] = f"{data[last_key]} {raw.strip()}".strip()
            continue
        key, found, value = raw.partition(sep)
        if not found:
            continue
        key = key.strip()
        if not key:
            continue
        if key not in data:
            data[key] = value.strip()
        last_key = key
    return data


def parse_table(text: str) -> list[dict[str, str]]:
    """Parse a fixed-width table with a header and a dashed rule.

    Column boundaries come from the header's word positions, which is how
    winget, scoop and snap lay out their output. Progress noise before the
    header is skipped.
    """
    lines = clean_lines(text)
    header_index = None
    for i, line in enumerate(lines):
        if i + 1 < len(lines) and RULE_RE.match(lines[i + 1]):
            header_index = i
            break
    if header_index is None:
        # snap prints no rule line; the first line is the header
        if not lines:
            return []
        header = lines[0]
        body = lines[1:]
    else:
        header = lines[header_index]
        body = lines[header_index + 2:]

    starts = [m.start() for m in re.finditer(r"\S+", header)]
    names = [m.group(0) for m in re.finditer(r"\S+", header)]
    rows: list[dict[str, str]] = []
    for line in body:
        row = {}
        for idx, (name, begin) in enumerate(zip(names, starts)):
            end = starts[idx + 1] if idx + 1 < len(starts) else None
            row[name] = line[begin:end].strip() if end is not None else line[begin:].strip()
        rows.append(row)
    return rows


def parse_pipe_table(text: str) -> list[list[str]]:
    """Parse ``a | b | c`` rows, skipping the header and rule lines."""
    rows = []
    seen_rule = False
    for line in clean_lines(text):
        if RULE_RE.match(line):
            seen_rule = True
            continue
        if not seen_rule or "|" not in line:
            continue
        rows.append([cell.strip() for cell in line.split("|")])
    return rows


def split_name_version(token: str) -> tuple[str, str | None]:
    """Split ``name-1.2.3`` at the last dash followed by a digit."""
    match = re.match(r"^(.+)-(\d[^-]*)$", token)
    if not match:
        return token, None
    return match.group(1), match.group(2)
