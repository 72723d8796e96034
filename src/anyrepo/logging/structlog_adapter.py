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
"""structlog-backed :class:`~anyrepo.logging.port.LoggingPort`.

The storage adapters log through stdlib ``logging`` and the sync layer emits
structlog events. Both end up in one handler on the root logger whose
``ProcessorFormatter`` renders them alike, as console lines or JSON.

Usage::

    adapter = StructlogAdapter()
    adapter.configure(Config.from_file("anyrepo.yaml").bind(LoggingProperties))
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from anyrepo.config.properties import LoggingProperties

_HANDLER_NAME = "anyrepo"


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


class StructlogAdapter:
    """Installs one stdout handler and routes structlog through stdlib logging."""

    def __init__(self) -> None:
        self.properties = LoggingProperties()

    def configure(self, properties: LoggingProperties) -> None:
        self.properties = properties
        pre_chain: list[Any] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ]
        renderer: Any = (
            structlog.processors.JSONRenderer()
            if properties.format.lower() == "json"
            else structlog.dev.ConsoleRenderer(colors=False)
        )
        structlog.configure(
            processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
        )

        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=pre_chain,
                processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            )
        )
        root = logging.getLogger()
        for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
            root.removeHandler(existing)
        root.addHandler(handler)

        levels = dict(properties.level)
        root.setLevel(_level(str(levels.pop("root", "INFO"))))
        for name, level in levels.items():
            logging.getLogger(name).setLevel(_level(str(level)))

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    @contextmanager
    def store_context(self, store: str) -> Iterator[None]:
        with structlog.contextvars.bound_contextvars(store=store):
            yield
