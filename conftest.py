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

"""Root pytest configuration for dynvar tests."""

import pytest


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Keep user and system config files out of the tests."""
    monkeypatch.delenv("DYNVAR_CONFIG", raising=False)
    monkeypatch.delenv("DYNVAR_ENGINE_ITERATION_FACTOR", raising=False)
    monkeypatch.delenv("DYNVAR_COMPILER_CYCLE_POLICY", raising=False)
    monkeypatch.delenv("DYNVAR_COMPILER_VALIDATE", raising=False)
    monkeypatch.setenv("DYNVAR_CONFIG", str(tmp_path / "no-such-config.json"))
