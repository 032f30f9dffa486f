"""
Source text emission.

``SourceWriter`` accumulates indented lines of Python source. Blocks are
opened with :meth:`SourceWriter.block` and closed with
:meth:`SourceWriter.finish_block`; a block that received no statement is
closed with ``pass`` so the emitted text always parses.
"""

from __future__ import annotations

import contextlib
import textwrap
from typing import Iterator, List


class SourceWriter:
    """
    Fluent builder for indented Python source text.

    Comments and blank lines do not count as statements when deciding
    whether a block needs a ``pass``.
    """

    def __init__(self, indent_size: int = 4):
        self._lines: List[str] = []
        self._indent_level = 0
        self._indent_size = indent_size
        self._statement_counts: List[int] = []

    @property
    def indentation_level(self) -> int:
        return self._indent_level

    def write(self, text: str) -> 'SourceWriter':
        """Write one or more lines; multi-line text is dedented first."""
        text = textwrap.dedent(text).strip("\n")
        for line in text.split("\n"):
            if line.strip():
                self._add_line(line.rstrip())
            else:
                self.blank_line()
        return self

    def write_line(self, line: str) -> 'SourceWriter':
        self._add_line(line)
        return self

    def write_lines(self, lines) -> 'SourceWriter':
        for line in lines:
            self._add_line(line)
        return self

    def write_comment(self, text: str) -> 'SourceWriter':
        for line in text.splitlines() or [""]:
            self._add_raw(f"# {line}".rstrip())
        return self

    def blank_line(self) -> 'SourceWriter':
        self._lines.append("")
        return self

    def block(self, header: str) -> 'SourceWriter':
        """Write ``header:`` and indent subsequent lines."""
        self._add_line(f"{header}:")
        self._statement_counts.append(0)
        self._indent_level += 1
        return self

    def finish_block(self) -> 'SourceWriter':
        """Close the innermost block opened with :meth:`block`."""
        if not self._statement_counts:
            raise ValueError("finish_block() called without an open block")
        if self._statement_counts[-1] == 0:
            self._add_line("pass")
        self._statement_counts.pop()
        self._indent_level -= 1
        return self

    @contextlib.contextmanager
    def code_block(self, header: str) -> Iterator['SourceWriter']:
        self.block(header)
        yield self
        self.finish_block()

    def code(self) -> str:
        """Return the accumulated source text."""
        return "\n".join(self._lines) + "\n"

    def _add_line(self, line: str) -> None:
        if self._statement_counts:
            self._statement_counts[-1] += 1
        self._add_raw(line)

    def _add_raw(self, line: str) -> None:
        indent = " " * (self._indent_level * self._indent_size)
        self._lines.append(f"{indent}{line}" if line else "")


class NullSourceWriter(SourceWriter):
    """Tracks indentation like a real writer but discards all text."""

    def blank_line(self) -> 'SourceWriter':
        return self

    def code(self) -> str:
        return ""

    def _add_raw(self, line: str) -> None:
        pass
