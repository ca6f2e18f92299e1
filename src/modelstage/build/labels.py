"""
Label table generation.

Reads the newline-delimited class label list that ships next to the model and
writes a Python module exposing it as an ordered, immutable tuple:

    LABELS: tuple[str, ...] = (
        "tench",
        "goldfish",
    )

Line order is label index order. Output is deterministic so an unchanged
label list always produces a byte-identical module.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

HEADER = "# Generated by modelstage from {source}. Do not edit.\n"
OPENING = "LABELS: tuple[str, ...] = (\n"
TERMINATOR = ")\n"


# Characters that cannot appear raw inside a one-line string literal.
_ESCAPES = {"\\": "\\\\", '"': '\\"', "\r": "\\r", "\x00": "\\x00"}


def _quote(label: str) -> str:
    """Quote a label as a double-quoted string literal token."""
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in label) + '"'


def _strip_terminator(line: str) -> str:
    """Drop a trailing "\\n" or "\\r\\n"; any other "\\r" is part of the label."""
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


def render_label_table(labels: list[str], source_name: str) -> str:
    """Render the label table module text."""
    parts = [HEADER.format(source=source_name), OPENING]
    parts.extend(f"    {_quote(label)},\n" for label in labels)
    parts.append(TERMINATOR)
    return "".join(parts)


def generate_label_table(source: Path, dest: Path) -> int:
    """Write the label table module from the label source file.

    The whole source is read and decoded before the destination is opened, so
    a failed read never truncates an existing table.

    Args:
        source: Label list, one label per line
        dest: Generated module path

    Returns:
        Number of labels written

    Raises:
        OSError: Source cannot be opened or decoded, or destination cannot be written
    """
    source = Path(source)
    dest = Path(dest)
    try:
        with open(source, encoding="utf-8", newline="\n") as reader:
            labels = [_strip_terminator(line) for line in reader]
    except UnicodeDecodeError as e:
        raise OSError(f"[label table] label source is not valid UTF-8: {source}") from e
    except OSError as e:
        raise OSError(f"[label table] failed to read {source}: {e}") from e

    text = render_label_table(labels, source.name)
    try:
        with open(dest, "w", encoding="utf-8", newline="\n") as writer:
            writer.write(text)
    except OSError as e:
        raise OSError(f"[label table] failed to write {dest}: {e}") from e

    logger.info("Wrote %d labels to %s", len(labels), dest)
    return len(labels)
