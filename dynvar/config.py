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

"""Dynvar configuration management.

Provides configuration dataclasses for the resolution engine and the
compiler, and a loader that reads from config files or environment
variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

CYCLE_POLICIES = ("fallback", "fail")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower() in ("true", "1")


@dataclass
class EngineConfig:
    """Resolution engine configuration.

    Attributes:
        iteration_factor: Refresh passes allowed per registered definition
            (the budget is ``iteration_factor * definitions + 1``)
    """

    iteration_factor: int = 10

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Create from a dictionary.

        Keys may use either snake_case (``iteration_factor``) or
        camelCase (``iterationFactor``).
        """
        return cls(
            iteration_factor=int(
                data.get("iteration_factor", data.get("iterationFactor", cls.iteration_factor))
            ),
        )

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create from environment variables.

        Recognised variables (all optional):
            DYNVAR_ENGINE_ITERATION_FACTOR
        """
        defaults = cls()
        raw = os.environ.get("DYNVAR_ENGINE_ITERATION_FACTOR")
        return cls(iteration_factor=int(raw) if raw else defaults.iteration_factor)


@dataclass
class CompilerConfig:
    """Compiler configuration.

    Attributes:
        cycle_policy: What to do when dynamic variables depend on each other
            in a cycle: ``fallback`` emits a best-effort order, ``fail``
            rejects the build
        validate: Run semantic validation before emitting
    """

    cycle_policy: str = "fallback"
    validate: bool = True

    def __post_init__(self) -> None:
        if self.cycle_policy not in CYCLE_POLICIES:
            raise ValueError(
                f"Unknown cycle policy '{self.cycle_policy}', expected one of {CYCLE_POLICIES}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompilerConfig:
        """Create from a dictionary."""
        return cls(
            cycle_policy=data.get("cycle_policy", data.get("cyclePolicy", cls.cycle_policy)),
            validate=data.get("validate", cls.validate),
        )

    @classmethod
    def from_env(cls) -> CompilerConfig:
        """Create from environment variables.

        Recognised variables (all optional):
            DYNVAR_COMPILER_CYCLE_POLICY  ("fallback" or "fail")
            DYNVAR_COMPILER_VALIDATE  ("true"/"1" to enable)
        """
        defaults = cls()
        return cls(
            cycle_policy=os.environ.get("DYNVAR_COMPILER_CYCLE_POLICY", defaults.cycle_policy),
            validate=_env_flag("DYNVAR_COMPILER_VALIDATE", defaults.validate),
        )


@dataclass
class DynvarConfig:
    """Top-level dynvar configuration.

    Attributes:
        engine: Resolution engine settings
        compiler: Compiler settings
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    compiler: CompilerConfig = field(default_factory=CompilerConfig)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""
        return {
            "engine": self.engine.to_dict(),
            "compiler": self.compiler.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DynvarConfig:
        """Create from a dictionary (e.g. parsed JSON)."""
        return cls(
            engine=EngineConfig.from_dict(data.get("engine", {})),
            compiler=CompilerConfig.from_dict(data.get("compiler", {})),
        )

    @classmethod
    def from_env(cls) -> DynvarConfig:
        """Create from environment variables."""
        return cls(
            engine=EngineConfig.from_env(),
            compiler=CompilerConfig.from_env(),
        )


# -- Config file loading -----------------------------------------------------

DEFAULT_CONFIG_FILENAME = "dynvar.config.json"

_SEARCH_PATHS = [
    Path.cwd,  # current directory
    lambda: Path.home() / ".dynvar",  # user home
    lambda: Path("/etc/dynvar"),  # system-wide
]


def _find_config_file(filename: str = DEFAULT_CONFIG_FILENAME) -> Path | None:
    """Search well-known locations for a config file.

    Search order:
        1. ``$DYNVAR_CONFIG`` environment variable (explicit path)
        2. Current working directory
        3. ``~/.dynvar/``
        4. ``/etc/dynvar/``

    Returns:
        Path to the first config file found, or ``None``.
    """
    explicit = os.environ.get("DYNVAR_CONFIG")
    if explicit:
        path = Path(explicit)
        if path.is_file():
            return path
        return None

    for path_fn in _SEARCH_PATHS:
        candidate = path_fn() / filename
        if candidate.is_file():
            return candidate
    return None


def load_config(path: str | Path | None = None) -> DynvarConfig:
    """Load dynvar configuration.

    Resolution order:
        1. Explicit *path* argument
        2. Config file found via :func:`_find_config_file`
        3. Environment variables (``DYNVAR_*``)
        4. Built-in defaults

    Args:
        path: Optional explicit path to a JSON config file.

    Returns:
        Populated :class:`DynvarConfig` instance.
    """
    config_path: Path | None = Path(path) if path else _find_config_file()

    if config_path and config_path.is_file():
        data = json.loads(config_path.read_text())
        return DynvarConfig.from_dict(data)

    return DynvarConfig.from_env()
