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

"""Build runtime objects from declaration AST nodes."""

from .ast import (
    AndCond,
    CompareCond,
    CondExpr,
    DefinedCond,
    DynamicDecl,
    EnvValueExpr,
    ExecValueExpr,
    FileValueExpr,
    FilterExpr,
    LocationFilterExpr,
    NotCond,
    OrCond,
    PlainValueExpr,
    Program,
    RefCond,
    RegexFilterExpr,
    ValueExpr,
)
from .runtime.conditions import (
    AndCondition,
    Condition,
    DefinedCondition,
    NotCondition,
    OrCondition,
    RefCondition,
    VariableCondition,
)
from .runtime.definition import DynamicVariable
from .runtime.filters import LocationFilter, RegexFilter, ValueFilter
from .runtime.values import EnvironmentValue, ExecValue, FileValue, PlainValue, Value

REGEX_OPTIONS = {"select", "replace", "default", "casesensitive", "global"}


def build_value(expr: ValueExpr) -> Value:
    """Build a runtime value from a value expression."""
    if isinstance(expr, PlainValueExpr):
        return PlainValue(value=expr.text)
    if isinstance(expr, EnvValueExpr):
        return EnvironmentValue(variable=expr.variable)
    if isinstance(expr, FileValueExpr):
        return FileValue(path=expr.path)
    if isinstance(expr, ExecValueExpr):
        return ExecValue(command=list(expr.command))
    raise ValueError(f"Unknown value expression: {type(expr)}")


def build_filter(expr: FilterExpr) -> ValueFilter:
    """Build a runtime filter from a filter expression."""
    if isinstance(expr, RegexFilterExpr):
        options = expr.options
        return RegexFilter(
            regexp=expr.regexp,
            select=options.get("select"),
            replace=options.get("replace"),
            default=options.get("default"),
            case_sensitive=bool(options.get("casesensitive", True)),
            global_=bool(options.get("global", False)),
        )
    if isinstance(expr, LocationFilterExpr):
        return LocationFilter(base_dir=expr.base_dir)
    raise ValueError(f"Unknown filter expression: {type(expr)}")


def build_definition(decl: DynamicDecl) -> DynamicVariable:
    """Build a dynamic variable definition from its declaration."""
    return DynamicVariable(
        name=decl.name,
        value=build_value(decl.value),
        condition_id=decl.condition,
        check_once=decl.check_once,
        auto_unset=decl.auto_unset,
        ignore_failure=decl.ignore_failure,
        filters=[build_filter(f) for f in decl.filters],
    )


def build_definitions(program: Program) -> dict[str, list[DynamicVariable]]:
    """Build all definitions of *program*, grouped by name in declaration order."""
    grouped: dict[str, list[DynamicVariable]] = {}
    for decl in program.dynamics:
        grouped.setdefault(decl.name, []).append(build_definition(decl))
    return grouped


def build_condition(expr: CondExpr) -> Condition:
    """Build a runtime condition from a condition expression."""
    if isinstance(expr, CompareCond):
        return VariableCondition(variable=expr.variable, value=expr.value, operator=expr.operator)
    if isinstance(expr, DefinedCond):
        return DefinedCondition(variable=expr.variable)
    if isinstance(expr, RefCond):
        return RefCondition(condition_id=expr.name)
    if isinstance(expr, NotCond):
        return NotCondition(operand=build_condition(expr.operand))
    if isinstance(expr, AndCond):
        return AndCondition(operands=[build_condition(op) for op in expr.operands])
    if isinstance(expr, OrCond):
        return OrCondition(operands=[build_condition(op) for op in expr.operands])
    raise ValueError(f"Unknown condition expression: {type(expr)}")
