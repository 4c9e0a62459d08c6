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

"""Lark Transformer to convert parse tree to dynvar AST."""

import re

from lark import Token, Transformer, v_args

from .ast import (
    AndCond,
    CompareCond,
    ConditionDecl,
    DefinedCond,
    DynamicDecl,
    EnvValueExpr,
    ExecValueExpr,
    FileValueExpr,
    LocationFilterExpr,
    Modifier,
    NotCond,
    OrCond,
    PlainValueExpr,
    Program,
    RefCond,
    RegexFilterExpr,
    SourceLocation,
    VariableDecl,
)

_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}
_ESCAPE_PATTERN = re.compile(r'\\(["\\nt])')


def _unescape(raw: str) -> str:
    """Process \\" \\\\ \\n \\t; other backslashes are kept (regex friendly)."""
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES[m.group(1)], raw)


def _get_location(meta, source_id: str | None = None) -> SourceLocation | None:
    """Extract source location from Lark meta."""
    if meta and not getattr(meta, "empty", True) and hasattr(meta, "line"):
        return SourceLocation(
            line=meta.line,
            column=meta.column,
            end_line=getattr(meta, "end_line", None),
            end_column=getattr(meta, "end_column", None),
            source_id=source_id,
        )
    return None


class DynvarTransformer(Transformer):
    """Transform Lark parse tree to dynvar AST."""

    def __init__(self, source_id: str | None = None):
        super().__init__()
        self._source_id = source_id

    def _loc(self, meta) -> SourceLocation | None:
        """Helper to get location with source_id."""
        return _get_location(meta, self._source_id)

    # Terminals
    def NAME(self, token: Token) -> str:
        return str(token)

    def STRING(self, token: Token) -> str:
        return _unescape(str(token)[1:-1])

    def COMPARE_OP(self, token: Token) -> str:
        return str(token)

    # Program
    @v_args(meta=True)
    def start(self, meta, items: list) -> Program:
        program = Program(location=self._loc(meta))
        for decl in items:
            if isinstance(decl, VariableDecl):
                program.variables.append(decl)
            elif isinstance(decl, ConditionDecl):
                program.conditions.append(decl)
            elif isinstance(decl, DynamicDecl):
                program.dynamics.append(decl)
        return program

    # Declarations
    @v_args(meta=True)
    def variable_decl(self, meta, items: list) -> VariableDecl:
        return VariableDecl(name=items[0], value=items[1], location=self._loc(meta))

    @v_args(meta=True)
    def condition_decl(self, meta, items: list) -> ConditionDecl:
        return ConditionDecl(name=items[0], condition=items[1], location=self._loc(meta))

    @v_args(meta=True)
    def dynamic_decl(self, meta, items: list) -> DynamicDecl:
        return DynamicDecl(
            name=items[0],
            value=items[1],
            modifiers=list(items[2:]),
            location=self._loc(meta),
        )

    # Values
    @v_args(meta=True)
    def plain_value(self, meta, items: list) -> PlainValueExpr:
        return PlainValueExpr(text=items[0], location=self._loc(meta))

    @v_args(meta=True)
    def env_value(self, meta, items: list) -> EnvValueExpr:
        return EnvValueExpr(variable=items[0], location=self._loc(meta))

    @v_args(meta=True)
    def file_value(self, meta, items: list) -> FileValueExpr:
        return FileValueExpr(path=items[0], location=self._loc(meta))

    @v_args(meta=True)
    def exec_value(self, meta, items: list) -> ExecValueExpr:
        return ExecValueExpr(command=list(items), location=self._loc(meta))

    # Modifiers
    @v_args(meta=True)
    def when_modifier(self, meta, items: list) -> Modifier:
        return Modifier(kind="when", argument=items[0], location=self._loc(meta))

    @v_args(meta=True)
    def checkonce_modifier(self, meta, items: list) -> Modifier:
        return Modifier(kind="checkonce", location=self._loc(meta))

    @v_args(meta=True)
    def autounset_modifier(self, meta, items: list) -> Modifier:
        return Modifier(kind="autounset", location=self._loc(meta))

    @v_args(meta=True)
    def ignorefailure_modifier(self, meta, items: list) -> Modifier:
        return Modifier(kind="ignorefailure", location=self._loc(meta))

    @v_args(meta=True)
    def filter_modifier(self, meta, items: list) -> Modifier:
        return Modifier(kind="filter", argument=items[0], location=self._loc(meta))

    # Filters
    @v_args(meta=True)
    def regex_filter(self, meta, items: list) -> RegexFilterExpr:
        options = {}
        for key, value in items[1:]:
            options[key] = value
        return RegexFilterExpr(regexp=items[0], options=options, location=self._loc(meta))

    @v_args(meta=True)
    def location_filter(self, meta, items: list) -> LocationFilterExpr:
        base_dir = items[0] if items else None
        return LocationFilterExpr(base_dir=base_dir, location=self._loc(meta))

    def filter_option(self, items: list) -> tuple[str, str | bool]:
        return items[0], items[1]

    def string_option(self, items: list) -> str:
        return items[0]

    def true_option(self, items: list) -> bool:
        return True

    def false_option(self, items: list) -> bool:
        return False

    # Conditions
    def cond_expr(self, items: list):
        return items[0]

    @v_args(meta=True)
    def or_cond(self, meta, items: list):
        # If there's only one operand, return it directly
        if len(items) == 1:
            return items[0]
        return OrCond(operands=list(items), location=self._loc(meta))

    @v_args(meta=True)
    def and_cond(self, meta, items: list):
        if len(items) == 1:
            return items[0]
        return AndCond(operands=list(items), location=self._loc(meta))

    @v_args(meta=True)
    def negation(self, meta, items: list) -> NotCond:
        return NotCond(operand=items[0], location=self._loc(meta))

    def not_cond(self, items: list):
        return items[0]

    @v_args(meta=True)
    def compare_cond(self, meta, items: list) -> CompareCond:
        return CompareCond(
            variable=items[0], operator=items[1], value=items[2], location=self._loc(meta)
        )

    @v_args(meta=True)
    def defined_cond(self, meta, items: list) -> DefinedCond:
        return DefinedCond(variable=items[0], location=self._loc(meta))

    @v_args(meta=True)
    def ref_cond(self, meta, items: list) -> RefCond:
        return RefCond(name=items[0], location=self._loc(meta))

    def group_cond(self, items: list):
        return items[0]
