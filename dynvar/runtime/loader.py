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

"""Load a compiled installation document into a resolution engine."""

import json
import logging
from pathlib import Path
from typing import Any

from ..config import EngineConfig
from .conditions import RulesEngine, condition_from_dict
from .definition import DynamicVariable
from .variables import Variables

logger = logging.getLogger(__name__)


def load_installation(data: dict[str, Any], config: EngineConfig | None = None) -> Variables:
    """Build a :class:`Variables` engine from an installation document.

    Static variables seed the store, conditions populate a
    :class:`RulesEngine` attached as the condition oracle, and dynamic
    variables are added in their serialized order.

    Raises:
        ValueError: If the document is not an installation or contains
            unknown value, filter or condition types. Static variable
            values must be strings
    """
    doc_type = data.get("type")
    if doc_type != "Installation":
        raise ValueError(f"Expected an Installation document, got {doc_type!r}")

    static = data.get("variables", {})
    for name, value in static.items():
        if not isinstance(value, str):
            raise ValueError(f"Variable '{name}' must be a string, got {type(value).__name__}")

    variables = Variables(properties=static, config=config)

    rules = RulesEngine(variables.get)
    for entry in data.get("conditions", []):
        rules.add_condition(entry["id"], condition_from_dict(entry["condition"]))
    variables.set_rules(rules)

    definitions = [DynamicVariable.from_dict(d) for d in data.get("dynamicVariables", [])]
    variables.add_all(definitions)

    logger.info(
        "Loaded installation: %d variable(s), %d condition(s), %d dynamic variable(s)",
        len(variables.store),
        len(rules.condition_ids),
        len(definitions),
    )
    return variables


def load_installation_file(path: str | Path, config: EngineConfig | None = None) -> Variables:
    """Load an installation document from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file is not valid JSON
    """
    return load_installation(json.loads(Path(path).read_text()), config)
