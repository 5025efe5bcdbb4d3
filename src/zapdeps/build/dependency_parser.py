"""Parser for compiler dependency-rule output.

GCC and Clang emit make-style rules when invoked with -M/-MM:

    sketch.o: /build/sketch/sketch.ino.cpp /build/sketch/config.h \\
     /build/sketch/includes/de\\ bug.h Bridge.h

This module turns that text into the list of prerequisite paths. Rule targets
are discarded, backslash-newline continuations are joined, and escaped spaces
stay part of the path they belong to.
"""

import os
from dataclasses import dataclass, field
from typing import List

from .errors import ParseError


class DependencyParseError(ParseError):
    """Raised when dependency-rule text is malformed."""
    pass


@dataclass
class DependencyRecord:
    """One logical rule line: a target and its prerequisites."""

    target: str
    prerequisites: List[str] = field(default_factory=list)


# Characters the compiler escapes with a backslash inside file names
_ESCAPABLE = (" ", "\t", "#")


def parse_dependency_output(text: str) -> List[str]:
    """
    Parse dependency-rule text into prerequisite paths.

    Args:
        text: Raw stdout of a compiler run with -M/-MM

    Returns:
        Normalized prerequisite paths in first-seen order, without duplicates
        and without rule targets

    Raises:
        DependencyParseError: If the text ends in a dangling escape or a line
            has prerequisites but no rule separator
    """
    paths: List[str] = []
    seen = set()
    for record in parse_dependency_records(text):
        for prerequisite in record.prerequisites:
            if prerequisite not in seen:
                seen.add(prerequisite)
                paths.append(prerequisite)
    return paths


def parse_dependency_records(text: str) -> List[DependencyRecord]:
    """
    Parse dependency-rule text into one record per logical line.

    Args:
        text: Raw dependency-rule text

    Returns:
        List of DependencyRecord, empty lines skipped

    Raises:
        DependencyParseError: If the text is malformed
    """
    records = []
    for line_number, line in enumerate(_join_continuations(text), start=1):
        tokens = _tokenize(line, line_number)
        if not tokens:
            continue

        separator = _find_rule_separator(tokens)
        if separator < 0:
            raise DependencyParseError(
                f"Line {line_number}: no rule separator in dependency output: {line.strip()!r}"
            )

        target = tokens[0].rstrip(":") if tokens[0] != ":" else ""
        prerequisites = [
            os.path.normpath(token) for token in tokens[separator + 1:]
        ]
        records.append(DependencyRecord(target=target, prerequisites=prerequisites))

    return records


def _join_continuations(text: str) -> List[str]:
    """
    Join backslash-newline continuations into logical lines.

    A physical line continues when it ends in an odd number of backslashes.
    A continuation on the last non-blank line has nothing to join with.
    """
    physical = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    while physical and not physical[-1].strip():
        physical.pop()

    logical: List[str] = []
    pending: List[str] = []
    for index, line in enumerate(physical):
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            if index == len(physical) - 1:
                raise DependencyParseError(
                    "Dependency output ends with an unbalanced line continuation"
                )
            pending.append(line[:-1])
            continue
        pending.append(line)
        logical.append(" ".join(pending))
        pending = []

    return logical


def _tokenize(line: str, line_number: int) -> List[str]:
    """Split a logical line on unescaped whitespace."""
    tokens: List[str] = []
    buf: List[str] = []
    i = 0
    length = len(line)

    while i < length:
        ch = line[i]
        if ch == "\\":
            if i + 1 >= length:
                raise DependencyParseError(
                    f"Line {line_number}: dangling escape at end of line"
                )
            nxt = line[i + 1]
            if nxt in _ESCAPABLE:
                buf.append(nxt)
                i += 2
                continue
            # Literal backslash, e.g. a Windows path separator
            buf.append(ch)
            i += 1
            continue

        if ch == "$" and i + 1 < length and line[i + 1] == "$":
            buf.append("$")
            i += 2
            continue

        if ch in (" ", "\t"):
            if buf:
                tokens.append("".join(buf))
                buf = []
            i += 1
            continue

        buf.append(ch)
        i += 1

    if buf:
        tokens.append("".join(buf))

    return tokens


def _find_rule_separator(tokens: List[str]) -> int:
    """Return the index of the first token ending in ':' (the rule target)."""
    for index, token in enumerate(tokens):
        if token.endswith(":"):
            return index
    return -1
