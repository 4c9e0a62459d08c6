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

"""Dynvar semantic validator.

Validates AST for semantic correctness:
- Unique static variable names and condition ids
- Valid condition references (in conditions and in ``when``)
- No cyclic condition references
- No repeated modifiers
- Well-formed value sources and filters
"""

from dataclasses import dataclass, field

from .ast import (
    AndCond,
    CondExpr,
    ConditionDecl,
    DynamicDecl,
    NotCond,
    OrCond,
    Program,
    RefCond,
    RegexFilterExpr,
    SourceLocation,
)
from .builder import REGEX_OPTIONS, build_definition

_BOOLEAN_OPTIONS = {"casesensitive", "global"}


@dataclass
class ValidationError:
    """A semantic validation error."""

    message: str
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        location = ""
        if self.line is not None:
            location = f" at line {self.line}"
            if self.column is not None:
                location += f", column {self.column}"
        return f"{self.message}{location}"


@dataclass
class ValidationResult:
    """Result of validation containing any errors found."""

    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, message: str, location: SourceLocation | None = None) -> None:
        """Add a validation error."""
        line = location.line if location else None
        column = location.column if location else None
        self.errors.append(ValidationError(message, line, column))


def _condition_refs(expr: CondExpr) -> list[RefCond]:
    """Collect every condition reference inside *expr*."""
    if isinstance(expr, RefCond):
        return [expr]
    if isinstance(expr, NotCond):
        return _condition_refs(expr.operand)
    if isinstance(expr, (AndCond, OrCond)):
        refs: list[RefCond] = []
        for op in expr.operands:
            refs.extend(_condition_refs(op))
        return refs
    return []


class DynvarValidator:
    """Validates dynvar AST for semantic correctness."""

    def __init__(self):
        self._result: ValidationResult = ValidationResult()
        self._conditions: dict[str, ConditionDecl] = {}

    def validate(self, program: Program) -> ValidationResult:
        """Validate a program AST.

        Args:
            program: The Program AST to validate

        Returns:
            ValidationResult containing any errors found
        """
        self._result = ValidationResult()
        self._conditions = {}

        self._validate_variables(program)
        self._validate_conditions(program)
        for decl in program.dynamics:
            self._validate_dynamic(decl)

        return self._result

    def _validate_variables(self, program: Program) -> None:
        seen: set[str] = set()
        for decl in program.variables:
            if decl.name in seen:
                self._result.add_error(f"Duplicate variable '{decl.name}'", decl.location)
            seen.add(decl.name)

    def _validate_conditions(self, program: Program) -> None:
        for decl in program.conditions:
            if decl.name in self._conditions:
                self._result.add_error(f"Duplicate condition '{decl.name}'", decl.location)
                continue
            self._conditions[decl.name] = decl

        for decl in program.conditions:
            for ref in _condition_refs(decl.condition):
                if ref.name not in self._conditions:
                    self._result.add_error(
                        f"Condition '{decl.name}' references unknown condition '{ref.name}'",
                        ref.location or decl.location,
                    )

        self._check_condition_cycles()

    def _check_condition_cycles(self) -> None:
        """Report each condition that can reach itself through references."""
        graph = {
            name: [r.name for r in _condition_refs(decl.condition) if r.name in self._conditions]
            for name, decl in self._conditions.items()
        }
        reported: set[str] = set()

        def reaches(start: str, target: str, visited: set[str]) -> bool:
            for child in graph.get(start, []):
                if child == target:
                    return True
                if child not in visited:
                    visited.add(child)
                    if reaches(child, target, visited):
                        return True
            return False

        for name, decl in self._conditions.items():
            if name not in reported and reaches(name, name, set()):
                reported.add(name)
                self._result.add_error(
                    f"Condition '{name}' references itself (cyclic condition)", decl.location
                )

    def _validate_dynamic(self, decl: DynamicDecl) -> None:
        counts: dict[str, int] = {}
        for modifier in decl.modifiers:
            if modifier.kind == "filter":
                continue
            counts[modifier.kind] = counts.get(modifier.kind, 0) + 1
            if counts[modifier.kind] == 2:
                self._result.add_error(
                    f"Dynamic variable '{decl.name}' repeats modifier '{modifier.kind}'",
                    modifier.location or decl.location,
                )

        condition = decl.condition
        if condition is not None and condition not in self._conditions:
            self._result.add_error(
                f"Dynamic variable '{decl.name}' references unknown condition '{condition}'",
                decl.location,
            )

        options_valid = True
        for filter_expr in decl.filters:
            if isinstance(filter_expr, RegexFilterExpr):
                options_valid &= self._validate_regex_options(decl, filter_expr)

        if not options_valid:
            return

        for problem in build_definition(decl).validate():
            self._result.add_error(f"Dynamic variable '{decl.name}': {problem}", decl.location)

    def _validate_regex_options(self, decl: DynamicDecl, expr: RegexFilterExpr) -> bool:
        valid = True
        for key, value in expr.options.items():
            if key not in REGEX_OPTIONS:
                self._result.add_error(
                    f"Dynamic variable '{decl.name}': unknown regex option '{key}'",
                    expr.location or decl.location,
                )
                valid = False
            elif (key in _BOOLEAN_OPTIONS) != isinstance(value, bool):
                expected = "true or false" if key in _BOOLEAN_OPTIONS else "a string"
                self._result.add_error(
                    f"Dynamic variable '{decl.name}': regex option '{key}' must be {expected}",
                    expr.location or decl.location,
                )
                valid = False
        return valid


def validate(program: Program) -> ValidationResult:
    """Validate a program AST (convenience function)."""
    return DynvarValidator().validate(program)
