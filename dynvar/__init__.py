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

"""Dynvar: dynamic variable declarations, compiler and resolution engine."""

from .ast import (
    AndCond,
    ASTNode,
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
from .builder import build_condition, build_definition, build_definitions
from .config import CompilerConfig, DynvarConfig, EngineConfig, load_config
from .dependency import DependencyGraph, order_definitions_for_serialization
from .emitter import JSONEmitter, emit_dict, emit_json
from .parser import DynvarParser, ParseError, parse
from .validator import DynvarValidator, ValidationError, ValidationResult, validate

__version__ = "0.3.0"

__all__ = [
    # Parser
    "DynvarParser",
    "ParseError",
    "parse",
    # Emitter
    "JSONEmitter",
    "emit_json",
    "emit_dict",
    # Validator
    "DynvarValidator",
    "ValidationError",
    "ValidationResult",
    "validate",
    # Builder
    "build_condition",
    "build_definition",
    "build_definitions",
    # Dependency ordering
    "DependencyGraph",
    "order_definitions_for_serialization",
    # Configuration
    "DynvarConfig",
    "EngineConfig",
    "CompilerConfig",
    "load_config",
    # AST nodes
    "ASTNode",
    "SourceLocation",
    "Program",
    "VariableDecl",
    "ConditionDecl",
    "DynamicDecl",
    "Modifier",
    "CompareCond",
    "DefinedCond",
    "RefCond",
    "NotCond",
    "AndCond",
    "OrCond",
    "PlainValueExpr",
    "EnvValueExpr",
    "FileValueExpr",
    "ExecValueExpr",
    "RegexFilterExpr",
    "LocationFilterExpr",
]
