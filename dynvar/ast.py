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

"""Dynvar AST node definitions using dataclasses."""

from dataclasses import dataclass, field


@dataclass
class SourceLocation:
    """Source code location for error reporting."""

    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None
    source_id: str | None = None


@dataclass
class ASTNode:
    """Base class for all AST nodes."""

    location: SourceLocation | None = field(default=None, compare=False, repr=False, kw_only=True)


# Static variables
@dataclass
class VariableDecl(ASTNode):
    """Static variable: variable name = "value";"""

    name: str
    value: str


# Conditions
@dataclass
class CompareCond(ASTNode):
    """Variable comparison: name == "value" or name != "value"."""

    variable: str
    operator: str
    value: str


@dataclass
class DefinedCond(ASTNode):
    """Variable presence: defined(name)."""

    variable: str


@dataclass
class RefCond(ASTNode):
    """Reference to another named condition."""

    name: str


@dataclass
class NotCond(ASTNode):
    operand: "CondExpr"


@dataclass
class AndCond(ASTNode):
    operands: list["CondExpr"]


@dataclass
class OrCond(ASTNode):
    operands: list["CondExpr"]


CondExpr = CompareCond | DefinedCond | RefCond | NotCond | AndCond | OrCond


@dataclass
class ConditionDecl(ASTNode):
    """Named condition: condition name = expr;"""

    name: str
    condition: CondExpr


# Value sources
@dataclass
class PlainValueExpr(ASTNode):
    """Literal text with placeholders: "..."."""

    text: str


@dataclass
class EnvValueExpr(ASTNode):
    """Environment variable: env("NAME")."""

    variable: str


@dataclass
class FileValueExpr(ASTNode):
    """File content: file("path")."""

    path: str


@dataclass
class ExecValueExpr(ASTNode):
    """Command output: exec("cmd", "arg", ...)."""

    command: list[str]


ValueExpr = PlainValueExpr | EnvValueExpr | FileValueExpr | ExecValueExpr


# Filters
@dataclass
class RegexFilterExpr(ASTNode):
    """Regular expression filter: regex("re", select="\\1", ...)."""

    regexp: str
    options: dict[str, str | bool] = field(default_factory=dict)


@dataclass
class LocationFilterExpr(ASTNode):
    """Path filter: location or location("base")."""

    base_dir: str | None = None


FilterExpr = RegexFilterExpr | LocationFilterExpr


@dataclass
class Modifier(ASTNode):
    """Modifier of a dynamic declaration (when, checkonce, filter, ...)."""

    kind: str
    argument: "str | FilterExpr | None" = None


@dataclass
class DynamicDecl(ASTNode):
    """Dynamic variable: dynamic name = value modifiers;"""

    name: str
    value: ValueExpr
    modifiers: list[Modifier] = field(default_factory=list)

    def _find(self, kind: str) -> list[Modifier]:
        return [m for m in self.modifiers if m.kind == kind]

    @property
    def condition(self) -> str | None:
        found = self._find("when")
        return found[-1].argument if found else None

    @property
    def check_once(self) -> bool:
        return bool(self._find("checkonce"))

    @property
    def auto_unset(self) -> bool:
        return bool(self._find("autounset"))

    @property
    def ignore_failure(self) -> bool:
        return bool(self._find("ignorefailure"))

    @property
    def filters(self) -> list[FilterExpr]:
        return [m.argument for m in self._find("filter")]


@dataclass
class Program(ASTNode):
    """Root AST node: all declarations of one or more sources."""

    variables: list[VariableDecl] = field(default_factory=list)
    conditions: list[ConditionDecl] = field(default_factory=list)
    dynamics: list[DynamicDecl] = field(default_factory=list)

    @classmethod
    def merge(cls, programs: list["Program"]) -> "Program":
        """Merge several programs, keeping declaration order."""
        merged = cls()
        for program in programs:
            merged.variables.extend(program.variables)
            merged.conditions.extend(program.conditions)
            merged.dynamics.extend(program.dynamics)
        return merged
