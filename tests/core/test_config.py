# Copyright 2026 Firefly Software Solutions Inc.
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
"""Tests for Config loading, env overrides and dataclass binding."""

import os
from dataclasses import dataclass
from pathlib import Path

import pytest

from anyrepo.config import ClientProperties, DocumentProperties, RelationalProperties, SyncProperties
from anyrepo.core.config import Config, config_properties


class TestConfig:
    def test_get_nested_value(self):
        config = Config({"anyrepo": {"client": {"timeout": 10}}})
        assert config.get("anyrepo.client.timeout") == 10

    def test_get_with_default(self):
        assert Config({}).get("missing.key", "default") == "default"

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("ANYREPO_CLIENT_TIMEOUT", "5")
        config = Config({"anyrepo": {"client": {"timeout": 10}}})
        assert config.get("anyrepo.client.timeout") == "5"

    def test_placeholder_from_env(self, monkeypatch):
        monkeypatch.setenv("API_HOST", "api.internal")
        config = Config({"anyrepo": {"client": {"base-url": "http://${API_HOST}:8080/"}}})
        assert config.get("anyrepo.client.base-url") == "http://api.internal:8080/"

    def test_placeholder_default(self):
        config = Config({"db": {"url": "${DB_URL_NOT_SET_ANYWHERE:sqlite+aiosqlite:///:memory:}"}})
        assert config.get("db.url") == "sqlite+aiosqlite:///:memory:"

    def test_unresolvable_placeholder_raises(self):
        config = Config({"db": {"url": "${SURELY_NOT_DEFINED_ANYREPO_VAR}"}})
        with pytest.raises(ValueError, match="Cannot resolve placeholder"):
            config.get("db.url")

    def test_from_file_merges_over_defaults(self, tmp_path: Path):
        config_file = tmp_path / "anyrepo.yaml"
        config_file.write_text("anyrepo:\n  sync:\n    max-replay-attempts: 2\n")
        config = Config.from_file(config_file)
        assert config.get("anyrepo.sync.max-replay-attempts") == 2
        assert config.get("anyrepo.data.document.database") == "RepositoryDemo"

    def test_from_sources_applies_profiles(self, tmp_path: Path):
        (tmp_path / "anyrepo.yaml").write_text("anyrepo:\n  client:\n    timeout: 10\n")
        (tmp_path / "anyrepo-test.yaml").write_text("anyrepo:\n  client:\n    timeout: 1\n")
        config = Config.from_sources(tmp_path, active_profiles=["test"])
        assert config.get("anyrepo.client.timeout") == 1
        assert any("profile: test" in s for s in config.loaded_sources)


class TestBinding:
    def test_bind_custom_dataclass(self):
        @config_properties(prefix="app.db")
        @dataclass
        class DbProps:
            url: str = "sqlite://"
            pool_size: int = 5

        config = Config({"app": {"db": {"url": "postgresql://localhost/demo", "pool-size": "20"}}})
        props = config.bind(DbProps)
        assert props.url == "postgresql://localhost/demo"
        assert props.pool_size == 20

    def test_bind_requires_decorator(self):
        @dataclass
        class Plain:
            value: int = 1

        with pytest.raises(ValueError, match="not decorated"):
            Config({}).bind(Plain)

    def test_library_defaults(self):
        config = Config.from_file(Path("does-not-exist.yaml"))
        sync = config.bind(SyncProperties)
        assert sync.keys_suffix == "_Keys"
        assert sync.transactions_suffix == "_LocalTransactions"
        assert sync.max_replay_attempts == 5
        assert config.bind(DocumentProperties).database == "RepositoryDemo"
        assert config.bind(RelationalProperties).echo is False

    def test_env_override_is_coerced(self, monkeypatch):
        monkeypatch.setenv("ANYREPO_CLIENT_TIMEOUT", "7")
        props = Config({}).bind(ClientProperties)
        assert props.timeout == 7
        assert props.base_url == "http://localhost:5000/"

    def test_bool_coercion(self):
        os.environ.pop("ANYREPO_DATA_RELATIONAL_ECHO", None)
        config = Config({"anyrepo": {"data": {"relational": {"echo": "true"}}}})
        assert config.bind(RelationalProperties).echo is True
