"""Line-oriented key/value documents.

The module's generated configuration files are edited by parsing them into
a list of records, changing values by key and serializing them back. Lines
that are not assignments (comments, blank lines, shell code) are kept as
opaque records, so everything except the changed values round-trips byte
for byte.

Two dialects are supported:
- properties: ``key=value`` starting in column 0 (module.prop)
- shell: ``KEY=value`` optionally indented and/or ``export``-prefixed
  (metamount.sh)
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Dialect(str, Enum):
    """Assignment syntax of a document."""

    PROPERTIES = "properties"
    SHELL = "shell"


_ASSIGNMENT_PATTERNS: dict[Dialect, re.Pattern[str]] = {
    Dialect.PROPERTIES: re.compile(r"^(?P<lead>)(?P<key>[^#!=\s][^=\s]*)=(?P<value>.*)$"),
    Dialect.SHELL: re.compile(
        r"^(?P<lead>\s*(?:export\s+)?)(?P<key>[A-Za-z_][A-Za-z0-9_]*)=(?P<value>.*)$"
    ),
}


@dataclass
class Assignment:
    """A ``key=value`` line.

    Attributes:
        lead: Text before the key (indentation, ``export``).
        key: Assigned name.
        value: Everything after the first ``=``.
        newline: Original line terminator ("" on an unterminated last line).
    """

    lead: str
    key: str
    value: str
    newline: str = "\n"

    def render(self) -> str:
        return f"{self.lead}{self.key}={self.value}{self.newline}"


@dataclass
class RawLine:
    """Any line that is not an assignment."""

    text: str
    newline: str = "\n"

    def render(self) -> str:
        return f"{self.text}{self.newline}"


def _split_newline(line: str) -> tuple[str, str]:
    for ending in ("\r\n", "\n", "\r"):
        if line.endswith(ending):
            return line[: -len(ending)], ending
    return line, ""


class KeyValueDocument:
    """A parsed configuration file."""

    def __init__(
        self,
        records: list[Assignment | RawLine],
        dialect: Dialect = Dialect.PROPERTIES,
    ) -> None:
        self.records = records
        self.dialect = dialect

    @classmethod
    def parse(cls, text: str, dialect: Dialect = Dialect.PROPERTIES) -> KeyValueDocument:
        """Parse text into records.

        Args:
            text: File content.
            dialect: Assignment syntax to recognise.

        Returns:
            KeyValueDocument.
        """
        pattern = _ASSIGNMENT_PATTERNS[dialect]
        records: list[Assignment | RawLine] = []
        for line in io.StringIO(text, newline=""):
            body, newline = _split_newline(line)
            match = pattern.match(body)
            if match:
                records.append(
                    Assignment(
                        lead=match.group("lead"),
                        key=match.group("key"),
                        value=match.group("value"),
                        newline=newline,
                    )
                )
            else:
                records.append(RawLine(text=body, newline=newline))
        return cls(records, dialect)

    @classmethod
    def load(cls, path: Path, dialect: Dialect = Dialect.PROPERTIES) -> KeyValueDocument:
        # newline="" keeps CRLF endings intact
        with path.open(encoding="utf-8", newline="") as f:
            return cls.parse(f.read(), dialect)

    def assignments(self, key: str | None = None) -> Iterator[Assignment]:
        for record in self.records:
            if isinstance(record, Assignment) and (key is None or record.key == key):
                yield record

    def __contains__(self, key: object) -> bool:
        return any(True for _ in self.assignments(str(key)))

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value of the last assignment to key."""
        value = default
        for record in self.assignments(key):
            value = record.value
        return value

    def set(self, key: str, value: str) -> int:
        """Set every assignment of key to value.

        Args:
            key: Name to change.
            value: New value.

        Returns:
            Number of assignments changed.

        Raises:
            KeyError: If the document never assigns key.
        """
        count = 0
        for record in self.assignments(key):
            record.value = value
            count += 1
        if count == 0:
            raise KeyError(key)
        return count

    def serialize(self) -> str:
        return "".join(record.render() for record in self.records)

    def save(self, path: Path) -> None:
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(self.serialize())


__all__ = [
    "Assignment",
    "Dialect",
    "KeyValueDocument",
    "RawLine",
]
