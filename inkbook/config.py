"""The in-memory form of ``book.toml``.

``Config`` holds the ``[book]``, ``[build]`` and ``[rust]`` tables as typed
settings and keeps every other table as plain TOML data, which plugins and
alternative renderers read through dotted keys.
"""

from __future__ import annotations

import copy
import datetime
import json
import logging
import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import Any, TypeVar

import tomli_w

from inkbook.book_settings import (
    BookConfig,
    BuildConfig,
    ConfigError,
    RustConfig,
    _path,
    _string,
    _string_list,
)
from inkbook.html_settings import HtmlConfig

__all__ = ["Config", "ConfigError", "is_legacy_format", "parse_env"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ENV_PREFIX = "MDBOOK_"

_LEGACY_ITEMS = (
    "title",
    "authors",
    "source",
    "description",
    "output.html.destination",
)

_TOML_SCALARS = (bool, int, float, str, datetime.datetime, datetime.date, datetime.time)


def _lookup(value: Any, key: str) -> Any:
    """Read a dotted key out of nested tables, or ``None`` if it is absent."""
    while isinstance(value, dict):
        head, sep, tail = key.partition(".")
        if not sep:
            return value.get(key)
        value = value.get(head)
        key = tail
    return None


def _insert(table: dict[str, Any], key: str, value: Any) -> None:
    """Insert at a dotted key, replacing anything in the way with tables."""
    head, sep, tail = key.partition(".")
    if not sep:
        table[key] = value
        return
    child = table.get(head)
    if not isinstance(child, dict):
        child = {}
        table[head] = child
    _insert(child, tail, value)


def _delete(value: Any, key: str) -> Any:
    """Remove and return the item at a dotted key, or ``None`` if absent."""
    if not isinstance(value, dict):
        return None
    head, sep, tail = key.partition(".")
    if not sep:
        return value.pop(key, None)
    return _delete(value.get(head), tail)


def _to_toml_value(value: Any) -> Any:
    """Copy ``value`` into plain TOML data, or raise ``ConfigError``."""
    if isinstance(value, Enum):
        return _to_toml_value(value.value)
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, _TOML_SCALARS):
        return value
    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            if isinstance(key, PurePath):
                key = str(key)
            if not isinstance(key, str):
                raise ConfigError(f"table keys must be strings, got {key!r}")
            result[key] = _to_toml_value(item)
        return result
    if isinstance(value, (list, tuple)):
        return [_to_toml_value(item) for item in value]
    raise ConfigError(f"{value!r} cannot be represented as a TOML value")


def _sorted_tables(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _sorted_tables(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [_sorted_tables(item) for item in value]
    return value


def _take_legacy(table: dict[str, Any], key: str, parse: Callable[[Any, str], T]) -> T | None:
    if key not in table:
        return None
    try:
        return parse(table.pop(key), key)
    except ConfigError:
        return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _parse_env_value(value: str) -> Any:
    try:
        return json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return value


def parse_env(key: str) -> str | None:
    """Turn an ``MDBOOK_`` environment variable name into a dotted config key."""
    if not key.startswith(_ENV_PREFIX):
        return None
    return key[len(_ENV_PREFIX):].lower().replace("__", ".").replace("_", "-")


def is_legacy_format(table: Any) -> bool:
    """Whether ``table`` uses the old layout with metadata at the top level."""
    return any(_lookup(table, item) is not None for item in _LEGACY_ITEMS)


def _updated(settings: Any, key: str, value: Any) -> Any:
    """``settings`` with one field changed, or unchanged if the result is invalid."""
    raw = settings.to_dict()
    _insert(raw, key, value)
    try:
        return type(settings).from_dict(raw)
    except ConfigError:
        return settings


@dataclass
class Config:
    """The whole configuration of a book."""

    book: BookConfig = field(default_factory=BookConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    _rest: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_str(cls, src: str) -> Config:
        """Load a configuration from TOML text."""
        try:
            raw = tomllib.loads(src)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid configuration file: {exc}") from exc
        try:
            return cls._from_table(raw)
        except ConfigError as exc:
            raise ConfigError(f"Invalid configuration file: {exc}") from exc

    @classmethod
    def from_disk(cls, config_file: str | os.PathLike[str]) -> Config:
        """Load a configuration from a TOML file."""
        try:
            with open(config_file, encoding="utf-8") as handle:
                text = handle.read()
        except FileNotFoundError as exc:
            raise ConfigError(f"Unable to open the configuration file: {exc}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Couldn't read the file: {exc}") from exc
        return cls.from_str(text)

    @classmethod
    def _from_table(cls, raw: dict[str, Any]) -> Config:
        if is_legacy_format(raw):
            logger.warning("It looks like you are using the legacy book.toml format.")
            logger.warning(
                "Move top level entries like `title`, `authors` and `description` under "
                "a `[book]` table, and move `destination` from `[output.html]`, renamed "
                "to `build-dir`, under a `[build]` table."
            )
            return cls._from_legacy(raw)

        table = dict(raw)
        config = cls(
            book=BookConfig.from_dict(table.pop("book", {})),
            build=BuildConfig.from_dict(table.pop("build", {})),
            rust=RustConfig.from_dict(table.pop("rust", {})),
        )
        config._rest = table
        return config

    @classmethod
    def _from_legacy(cls, raw: dict[str, Any]) -> Config:
        table = copy.deepcopy(raw)
        config = cls()

        title = _take_legacy(table, "title", _string)
        if title is not None:
            config.book.title = title
        authors = _take_legacy(table, "authors", _string_list)
        if authors is not None:
            config.book.authors = authors
        source = _take_legacy(table, "source", _path)
        if source is not None:
            config.book.src = source
        description = _take_legacy(table, "description", _string)
        if description is not None:
            config.book.description = description

        destination = _delete(table, "output.html.destination")
        if isinstance(destination, str):
            config.build.build_dir = Path(destination)

        config._rest = table
        return config

    def update_from_env(self, environ: Mapping[str, str] | None = None) -> None:
        """Apply overrides from ``MDBOOK_*`` variables.

        ``MDBOOK_FOO_BAR__BAZ`` sets ``foo-bar.baz``. Values are parsed as
        JSON, falling back to the raw string.
        """
        logger.debug("Updating the config from environment variables")
        if environ is None:
            environ = os.environ

        for name, raw_value in list(environ.items()):
            key = parse_env(name)
            if key is None:
                continue
            logger.debug("%s => %s", key, raw_value)
            value = _parse_env_value(raw_value)

            if key in ("book", "build") and isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    self.set(f"{key}.{sub_key}", sub_value)
                return

            self.set(key, value)

    def get(self, key: str) -> Any:
        """The value at a dotted key outside the typed tables, or ``None``."""
        return _lookup(self._rest, key)

    def get_as(self, key: str, converter: Callable[[Any], T]) -> T | None:
        """The value at ``key`` passed through ``converter``, or ``None`` if absent."""
        value = self.get(key)
        if value is None:
            return None
        try:
            return converter(copy.deepcopy(value))
        except (TypeError, ValueError, KeyError) as exc:
            raise ConfigError(f"Couldn't deserialize the value: {exc}") from exc

    def set(self, index: str, value: Any) -> None:
        """Set a dotted key, replacing whatever is in the way.

        Raises ``ConfigError`` if ``value`` cannot be represented in TOML.
        """
        try:
            converted = _to_toml_value(value)
        except ConfigError as exc:
            raise ConfigError(f"Unable to represent the item as a TOML value: {exc}") from exc

        if index.startswith("book."):
            self.book = _updated(self.book, index[len("book."):], converted)
        elif index.startswith("build."):
            self.build = _updated(self.build, index[len("build."):], converted)
        else:
            _insert(self._rest, index, converted)

    def get_renderer(self, index: str) -> dict[str, Any] | None:
        """The ``[output.<index>]`` table, if there is one."""
        value = self.get(f"output.{index}")
        return value if isinstance(value, dict) else None

    def get_preprocessor(self, index: str) -> dict[str, Any] | None:
        """The ``[preprocessor.<index>]`` table, if there is one."""
        value = self.get(f"preprocessor.{index}")
        return value if isinstance(value, dict) else None

    def html_config(self) -> HtmlConfig | None:
        """The HTML renderer's settings; ``None`` if absent or invalid."""
        value = self.get("output.html")
        if value is None:
            return None
        try:
            return HtmlConfig.from_dict(value)
        except ConfigError as exc:
            logger.error("Parsing configuration [output.html]: %s", exc)
            return None

    def to_dict(self) -> dict[str, Any]:
        """The whole configuration as TOML data; default build and rust tables are omitted."""
        table = copy.deepcopy(self._rest)
        table["book"] = self.book.to_dict()
        if self.build != BuildConfig():
            table["build"] = self.build.to_dict()
        if self.rust != RustConfig():
            table["rust"] = self.rust.to_dict()
        return table

    def to_toml(self) -> str:
        """The configuration as ``book.toml`` text with keys in sorted order."""
        return tomli_w.dumps(_sorted_tables(self.to_dict()))