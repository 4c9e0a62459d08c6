# Copyright 2025 Ralph Lemke
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Parser for ``.dv`` declaration files.

The grammar lives in ``grammar/dynvar.lark``. Parsing produces a Lark tree
that :class:`DynvarTransformer` turns into a :class:`Program`; any Lark
failure along the way surfaces as :class:`ParseError`.
"""

from __future__ import annotations

from pathlib import Path

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken, VisitError

from .ast import Program
from .transformer import DynvarTransformer


class ParseError(Exception):
    """A declaration file could not be parsed.

    ``line`` and ``column`` are 1-based when known. ``source_id`` names the
    file (or other source) the text came from and prefixes the message.
    """

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        source_id: str | None = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        self.source_id = source_id
        location = ""
        if line is not None:
            location = f" at line {line}"
            if column is not None:
                location += f", column {column}"
        prefix = f"[{source_id}] " if source_id else ""
        super().__init__(f"{prefix}{message}{location}")

    def in_source(self, source_id: str) -> ParseError:
        """Return a copy of this error attributed to *source_id*."""
        return ParseError(self.message, line=self.line, column=self.column, source_id=source_id)


_GRAMMAR_PATH = Path(__file__).parent / "grammar" / "dynvar.lark"


def _to_parse_error(error: Exception) -> ParseError:
    if isinstance(error, UnexpectedCharacters):
        return ParseError(f"Unexpected character '{error.char}'", line=error.line, column=error.column)
    if isinstance(error, UnexpectedToken):
        expected = ", ".join(sorted(error.expected)) if error.expected else "unknown"
        return ParseError(
            f"Unexpected token '{error.token}'. Expected one of: {expected}",
            line=error.line,
            column=error.column,
        )
    if isinstance(error, VisitError):
        # raised by transformer callbacks, e.g. an unknown value function
        return ParseError(f"Invalid declaration: {error.orig_exc}")
    return ParseError(
        "Syntax error",
        line=getattr(error, "line", None),
        column=getattr(error, "column", None),
    )


class DynvarParser:
    """Turns declaration text into :class:`Program` trees.

    The compiled LALR table is built once per process and kept on the
    class; instances only hold a reference to it.
    """

    _lark: Lark | None = None

    @classmethod
    def _get_lark(cls) -> Lark:
        if cls._lark is None:
            cls._lark = Lark(
                _GRAMMAR_PATH.read_text(),
                parser="lalr",
                propagate_positions=True,
                maybe_placeholders=False,
            )
        return cls._lark

    def __init__(self) -> None:
        self._parser = self._get_lark()

    def parse(
        self,
        source: str,
        filename: str = "<string>",
        source_id: str | None = None,
    ) -> Program:
        """Parse *source* into a :class:`Program`.

        Every declaration records a location whose ``source_id`` is
        *source_id* when given and *filename* otherwise.

        Raises:
            ParseError: On a syntax error or an invalid declaration
        """
        transformer = DynvarTransformer(source_id=source_id if source_id is not None else filename)
        try:
            return transformer.transform(self._parser.parse(source))
        except (UnexpectedInput, VisitError) as e:
            raise _to_parse_error(e) from e

    def parse_file(self, filepath: str | Path) -> Program:
        """Read and parse one ``.dv`` file; locations use a ``file://`` id."""
        path = Path(filepath)
        return self.parse(path.read_text(), filename=str(path), source_id=f"file://{path}")

    def parse_files(self, filepaths: list[str | Path]) -> Program:
        """Parse *filepaths* in order and merge them into one program.

        A syntax error is reported against the file it occurred in.
        """
        programs: list[Program] = []
        for filepath in filepaths:
            try:
                programs.append(self.parse_file(filepath))
            except ParseError as e:
                raise e.in_source(str(filepath)) from e
        return Program.merge(programs)


def parse(source: str, filename: str = "<string>") -> Program:
    return DynvarParser().parse(source, filename)
