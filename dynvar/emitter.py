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

"""Dynvar AST to installation JSON emitter."""

import json
from typing import Any

from .ast import Program, SourceLocation
from .builder import build_condition, build_definition
from .dependency import order_definitions_for_serialization
from .runtime.definition import DynamicVariable


class JSONEmitter:
    """Converts a dynvar program to an installation document."""

    def __init__(
        self,
        include_locations: bool = True,
        indent: int | None = 2,
        cycle_policy: str = "fallback",
    ):
        """Initialize emitter.

        Args:
            include_locations: Include source locations in output
            indent: JSON indentation (None for compact)
            cycle_policy: Ordering policy for cyclic dynamic variables
        """
        self.include_locations = include_locations
        self.indent = indent
        self.cycle_policy = cycle_policy

    def emit(self, program: Program) -> str:
        """Convert a program to a JSON string.

        Raises:
            DependencyCycleError: If dynamic variables form a cycle and the
                cycle policy is ``fail``
        """
        return json.dumps(self.emit_dict(program), indent=self.indent)

    def emit_dict(self, program: Program) -> dict[str, Any]:
        """Convert a program to an installation dictionary."""
        return {
            "type": "Installation",
            "variables": {decl.name: decl.value for decl in program.variables},
            "conditions": [self._condition(decl) for decl in program.conditions],
            "dynamicVariables": self._dynamic_variables(program),
        }

    def _location(self, loc: SourceLocation) -> dict:
        result = {"line": loc.line, "column": loc.column}
        if loc.end_line is not None:
            result["endLine"] = loc.end_line
        if loc.end_column is not None:
            result["endColumn"] = loc.end_column
        return result

    def _condition(self, decl) -> dict:
        data = {"id": decl.name, "condition": build_condition(decl.condition).to_dict()}
        if self.include_locations and decl.location:
            data["location"] = self._location(decl.location)
        return data

    def _dynamic_variables(self, program: Program) -> list[dict]:
        grouped: dict[str, list[DynamicVariable]] = {}
        locations: dict[int, SourceLocation | None] = {}
        for decl in program.dynamics:
            definition = build_definition(decl)
            grouped.setdefault(decl.name, []).append(definition)
            locations[id(definition)] = decl.location

        result = []
        for definition in order_definitions_for_serialization(grouped, self.cycle_policy):
            data = definition.to_dict()
            loc = locations.get(id(definition))
            if self.include_locations and loc:
                data["location"] = self._location(loc)
            result.append(data)
        return result


def emit_json(program: Program, indent: int | None = 2, **kwargs) -> str:
    """Emit a program as installation JSON (convenience function)."""
    return JSONEmitter(indent=indent, **kwargs).emit(program)


def emit_dict(program: Program, **kwargs) -> dict[str, Any]:
    """Emit a program as an installation dictionary (convenience function)."""
    return JSONEmitter(**kwargs).emit_dict(program)
