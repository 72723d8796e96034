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
"""Layered configuration for AnyRepo adapters.

Values are looked up by dotted key (``anyrepo.sync.max-replay-attempts``) in a
stack of sources, highest priority first:

1. ``ANYREPO_*`` environment variables (``ANYREPO_SYNC_MAX_REPLAY_ATTEMPTS``)
2. Files passed to :meth:`Config.from_file` / found by :meth:`Config.from_sources`
3. The packaged ``anyrepo-defaults.yaml``

String values may contain ``${NAME}`` or ``${NAME:fallback}`` placeholders;
``NAME`` is looked up in the environment first, then as a dotted config key.
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]

T = TypeVar("T")

PREFIX_ATTR = "__anyrepo_config_prefix__"
ENV_PREFIX = "ANYREPO_"
FILE_STEM = "anyrepo"
MAX_PLACEHOLDER_DEPTH = 10

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Declare the config section a properties dataclass binds to.

    Example::

        @config_properties(prefix="anyrepo.client")
        @dataclass
        class ClientProperties:
            base_url: str = "http://localhost:5000/"
            timeout: int = 30
    """

    def mark(cls: type[T]) -> type[T]:
        setattr(cls, PREFIX_ATTR, prefix)
        return cls

    return mark


def env_key(key: str) -> str:
    """Environment variable overriding dotted *key*."""
    name = key.removeprefix(f"{FILE_STEM}.")
    return ENV_PREFIX + re.sub(r"[.\-]", "_", name).upper()


def read_config_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        return tomllib.loads(path.read_text()) or {}
    return yaml.safe_load(path.read_text()) or {}


def merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Return *base* with *overlay* merged in; nested sections merge, scalars replace."""
    result = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        result[key] = merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return result


def _packaged_defaults() -> dict[str, Any]:
    resource = importlib.resources.files("anyrepo.resources") / f"{FILE_STEM}-defaults.yaml"
    return yaml.safe_load(resource.read_text()) or {}


def _coerce(value: Any, target: Any) -> Any:
    if not isinstance(value, str):
        return value
    if target is bool:
        return value.strip().lower() in _TRUE_WORDS
    if target in (int, float):
        return target(value)
    return value


class Config:
    """Read-only view over merged configuration data."""

    def __init__(self, data: dict[str, Any] | None = None, sources: Iterable[str] = ()) -> None:
        self._data: dict[str, Any] = data or {}
        self._sources = list(sources)

    @classmethod
    def from_file(cls, path: str | Path, load_defaults: bool = True) -> Config:
        """Layer one YAML/TOML file over the packaged defaults; a missing file is skipped."""
        path = Path(path)
        data: dict[str, Any] = {}
        sources: list[str] = []
        if load_defaults:
            data, sources = _packaged_defaults(), ["anyrepo-defaults.yaml (library defaults)"]
        if path.is_file():
            data = merge(data, read_config_file(path))
            sources.append(str(path))
        return cls(data, sources)

    @classmethod
    def from_sources(
        cls,
        base_dir: str | Path,
        active_profiles: Iterable[str] = (),
        load_defaults: bool = True,
    ) -> Config:
        """Discover ``anyrepo.{yaml,toml}`` and ``anyrepo-<profile>.{yaml,toml}``.

        Both *base_dir* and ``base_dir/config`` are searched; files in
        *base_dir* win over ``config/``, and each profile wins over the
        plain files and over the profiles listed before it.
        """
        base_dir = Path(base_dir)
        data: dict[str, Any] = {}
        sources: list[str] = []
        if load_defaults:
            data, sources = _packaged_defaults(), ["anyrepo-defaults.yaml (library defaults)"]

        layers: list[tuple[str, str | None]] = [(FILE_STEM, None)]
        layers += [(f"{FILE_STEM}-{profile}", profile) for profile in active_profiles]
        for stem, profile in layers:
            for folder in (base_dir / "config", base_dir):
                for suffix in (".yaml", ".toml"):
                    candidate = folder / f"{stem}{suffix}"
                    if not candidate.is_file():
                        continue
                    data = merge(data, read_config_file(candidate))
                    sources.append(f"{candidate} (profile: {profile})" if profile else str(candidate))
        return cls(data, sources)

    @property
    def loaded_sources(self) -> list[str]:
        return list(self._sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def _lookup(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """Value at dotted *key*, an ``ANYREPO_*`` override, or *default*.

        Raises:
            ValueError: A placeholder in the value cannot be resolved.
        """
        override = os.environ.get(env_key(key))
        if override is not None:
            return override
        value = self._lookup(key)
        if value is None:
            return default
        return self._expand(value) if isinstance(value, str) else value

    def get_section(self, prefix: str) -> dict[str, Any]:
        section = self._lookup(prefix)
        return section if isinstance(section, dict) else {}

    def _expand(self, text: str, depth: int = 0) -> str:
        if "${" not in text:
            return text
        if depth > MAX_PLACEHOLDER_DEPTH:
            raise ValueError(f"Placeholders in '{text}' nest too deeply (circular reference?)")

        def substitute(match: re.Match[str]) -> str:
            name, has_fallback, fallback = match.group(1).partition(":")
            if name in os.environ:
                return os.environ[name]
            found = self._lookup(name)
            if found is not None:
                return self._expand(str(found), depth + 1)
            if has_fallback:
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{name}}}': not found in environment or config")

        return _PLACEHOLDER.sub(substitute, text)

    def bind(self, properties_cls: type[T]) -> T:
        """Instantiate a :func:`config_properties` dataclass from its section.

        Section keys may be kebab-case or snake_case. String values (from
        files or the environment) are converted to ``int``, ``float`` or
        ``bool`` when the field is declared that way.
        """
        prefix = getattr(properties_cls, PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{properties_cls.__name__} is not decorated with @config_properties")

        section = {key.replace("-", "_"): value for key, value in self.get_section(prefix).items()}
        hints = get_type_hints(properties_cls)
        values: dict[str, Any] = {}
        for field in dataclasses.fields(properties_cls):  # type: ignore[arg-type]
            raw = os.environ.get(env_key(f"{prefix}.{field.name}"), section.get(field.name))
            if raw is None:
                continue
            if isinstance(raw, str):
                raw = self._expand(raw)
            values[field.name] = _coerce(raw, hints.get(field.name))
        return properties_cls(**values)
