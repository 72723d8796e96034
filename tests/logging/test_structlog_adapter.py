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
"""Tests for StructlogAdapter."""

import logging

import pytest
import structlog

from anyrepo.config import LoggingProperties
from anyrepo.core.config import Config
from anyrepo.logging import LoggingPort, StructlogAdapter


def anyrepo_handlers() -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if h.get_name() == "anyrepo"]


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in anyrepo_handlers():
        root.removeHandler(handler)
    root.setLevel(level)
    logging.getLogger("anyrepo.sync").setLevel(logging.NOTSET)


class TestStructlogAdapter:
    def test_implements_logging_port(self):
        assert isinstance(StructlogAdapter(), LoggingPort)

    def test_defaults_bound_from_packaged_config(self):
        props = Config.from_file("does-not-exist.yaml").bind(LoggingProperties)
        assert props.format == "console"
        assert props.level == {"root": "INFO"}

    def test_configure_installs_one_handler(self):
        adapter = StructlogAdapter()
        adapter.configure(LoggingProperties())
        adapter.configure(LoggingProperties())
        [handler] = anyrepo_handlers()
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
        assert logging.getLogger().level == logging.INFO

    def test_levels_per_logger(self):
        adapter = StructlogAdapter()
        config = Config(
            {"anyrepo": {"logging": {"format": "json", "level": {"root": "debug", "anyrepo.sync": "warning"}}}}
        )
        adapter.configure(config.bind(LoggingProperties))
        assert adapter.properties.format == "json"
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("anyrepo.sync").level == logging.WARNING

    def test_json_rendering_of_stdlib_records(self, capsys):
        adapter = StructlogAdapter()
        adapter.configure(LoggingProperties(format="json"))
        logging.getLogger("anyrepo.data.test").warning("Inserted %s", "Customer")
        out = capsys.readouterr().out
        assert '"event": "Inserted Customer"' in out
        assert '"logger": "anyrepo.data.test"' in out

    def test_store_context_binds_and_unbinds(self):
        adapter = StructlogAdapter()
        with adapter.store_context("Customer"):
            assert structlog.contextvars.get_contextvars()["store"] == "Customer"
        assert "store" not in structlog.contextvars.get_contextvars()

    def test_get_logger_is_usable(self):
        adapter = StructlogAdapter()
        adapter.configure(LoggingProperties())
        logger = adapter.get_logger("anyrepo.test")
        assert callable(getattr(logger, "info", None))
