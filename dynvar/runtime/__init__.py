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

"""Dynvar runtime package.

Resolves dynamic variables to a fixed point through iterative refresh.
"""

from .blocking import BlockingRegistry
from .conditions import (
    AndCondition,
    Condition,
    ConditionOracle,
    DefinedCondition,
    NotCondition,
    OrCondition,
    RefCondition,
    RulesEngine,
    VariableCondition,
    condition_from_dict,
)
from .definition import DynamicVariable
from .errors import (
    ConditionError,
    ConfigurationError,
    CyclicDependencyError,
    DefinitionError,
    DependencyCycleError,
    DynvarError,
    RefreshError,
    SubstitutionError,
    ValueResolutionError,
)
from .filters import LocationFilter, RegexFilter, ValueFilter, filter_from_dict
from .loader import load_installation, load_installation_file
from .store import VariableStore
from .substitutor import VariableSubstitutor, is_unresolved, parse_unresolved_names
from .values import (
    EnvironmentValue,
    ExecValue,
    FileValue,
    PlainValue,
    Value,
    value_from_dict,
)
from .variables import Variables

__all__ = [
    # Engine
    "Variables",
    "VariableStore",
    "VariableSubstitutor",
    "BlockingRegistry",
    "is_unresolved",
    "parse_unresolved_names",
    # Definitions
    "DynamicVariable",
    "Value",
    "PlainValue",
    "EnvironmentValue",
    "FileValue",
    "ExecValue",
    "value_from_dict",
    "ValueFilter",
    "RegexFilter",
    "LocationFilter",
    "filter_from_dict",
    # Conditions
    "ConditionOracle",
    "Condition",
    "RulesEngine",
    "VariableCondition",
    "DefinedCondition",
    "RefCondition",
    "NotCondition",
    "AndCondition",
    "OrCondition",
    "condition_from_dict",
    # Loading
    "load_installation",
    "load_installation_file",
    # Errors
    "DynvarError",
    "ConfigurationError",
    "SubstitutionError",
    "ValueResolutionError",
    "DefinitionError",
    "RefreshError",
    "CyclicDependencyError",
    "ConditionError",
    "DependencyCycleError",
]
