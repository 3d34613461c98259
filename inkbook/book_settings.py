"""Settings for the ``[book]``, ``[build]`` and ``[rust]`` tables of ``book.toml``."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

T = TypeVar("T")

_RTL_LANGUAGES = frozenset(
    {
        "ar", "ara", "arc", "ae", "ave", "egy", "he", "heb", "nqo", "pal", "phn",
        "sam", "syc", "syr", "fa", "per", "fas", "ku", "kur", "ur", "urd",
        "pus", "ps", "yi", "yid",
    }
)


class ConfigError(ValueError):
    """Raised when configuration data cannot be interpreted."""


class TextDirection(Enum):
    """Direction of text in the rendered book."""

    LEFT_TO_RIGHT = "ltr"
    RIGHT_TO_LEFT = "rtl"

    @classmethod
    def from_lang_code(cls, code: str) -> TextDirection:
        """Derive the text direction from a language code."""
        return cls.RIGHT_TO_LEFT if code in _RTL_LANGUAGES else cls.LEFT_TO_RIGHT


class RustEdition(Enum):
    """Rust edition used for code in the book."""

    E2024 = "2024"
    E2021 = "2021"
    E2018 = "2018"
    E2015 = "2015"


def _table(data: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError(f"[{name}] must be a table, got {type(data).__name__}")
    return data


def _string(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"`{key}` must be a string, got {value!r}")
    return value


def _boolean(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"`{key}` must be a boolean, got {value!r}")
    return value


def _path(value: Any, key: str) -> Path:
    return Path(_string(value, key))


def _string_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list):
        raise ConfigError(f"`{key}` must be an array, got {value!r}")
    return [_string(item, key) for item in value]


def _path_list(value: Any, key: str) -> list[Path]:
    return [Path(item) for item in _string_list(value, key)]


def _enum(enum_type: type[Enum]) -> Callable[[Any, str], Any]:
    def parse(value: Any, key: str) -> Any:
        text = _string(value, key)
        try:
            return enum_type(text)
        except ValueError:
            allowed = ", ".join(repr(member.value) for member in enum_type)
            raise ConfigError(
                f"unknown variant {text!r} for `{key}`, expected one of {allowed}"
            ) from None

    return parse


def _optional(parse: Callable[[Any, str], T]) -> Callable[[Any, str], T | None]:
    def parse_optional(value: Any, key: str) -> T | None:
        return None if value is None else parse(value, key)

    return parse_optional


def _read(table: Mapping[str, Any], key: str, parse: Callable[[Any, str], T], default: T) -> T:
    if key not in table:
        return default
    return parse(table[key], key)


def _without_none(items: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in items.items() if value is not None}


@dataclass
class BookConfig:
    """Metadata about the book, needed to load it from disk."""

    title: str | None = None
    authors: list[str] = field(default_factory=list)
    description: str | None = None
    src: Path = field(default_factory=lambda: Path("src"))
    multilingual: bool = False
    language: str | None = "en"
    text_direction: TextDirection | None = None

    def realized_text_direction(self) -> TextDirection:
        """The explicit text direction, or the one implied by the language."""
        if self.text_direction is not None:
            return self.text_direction
        return TextDirection.from_lang_code(self.language or "")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BookConfig:
        """Build from a ``[book]`` table; missing keys take their defaults."""
        table = _table(data, "book")
        default = cls()
        return cls(
            title=_read(table, "title", _optional(_string), default.title),
            authors=_read(table, "authors", _string_list, default.authors),
            description=_read(table, "description", _optional(_string), default.description),
            src=_read(table, "src", _path, default.src),
            multilingual=_read(table, "multilingual", _boolean, default.multilingual),
            language=_read(table, "language", _optional(_string), default.language),
            text_direction=_read(
                table, "text-direction", _optional(_enum(TextDirection)), default.text_direction
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """The ``[book]`` table, with unset optional values left out."""
        return _without_none(
            {
                "title": self.title,
                "authors": list(self.authors),
                "description": self.description,
                "src": str(self.src),
                "multilingual": self.multilingual,
                "language": self.language,
                "text-direction": self.text_direction.value if self.text_direction else None,
            }
        )


@dataclass
class BuildConfig:
    """Settings for the build procedure."""

    build_dir: Path = field(default_factory=lambda: Path("book"))
    create_missing: bool = True
    use_default_preprocessors: bool = True
    extra_watch_dirs: list[Path] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BuildConfig:
        """Build from a ``[build]`` table; missing keys take their defaults."""
        table = _table(data, "build")
        default = cls()
        return cls(
            build_dir=_read(table, "build-dir", _path, default.build_dir),
            create_missing=_read(table, "create-missing", _boolean, default.create_missing),
            use_default_preprocessors=_read(
                table, "use-default-preprocessors", _boolean, default.use_default_preprocessors
            ),
            extra_watch_dirs=_read(table, "extra-watch-dirs", _path_list, default.extra_watch_dirs),
        )

    def to_dict(self) -> dict[str, Any]:
        """The ``[build]`` table."""
        return {
            "build-dir": str(self.build_dir),
            "create-missing": self.create_missing,
            "use-default-preprocessors": self.use_default_preprocessors,
            "extra-watch-dirs": [str(path) for path in self.extra_watch_dirs],
        }


@dataclass
class RustConfig:
    """Settings for Rust code in the book."""

    edition: RustEdition | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RustConfig:
        """Build from a ``[rust]`` table; missing keys take their defaults."""
        table = _table(data, "rust")
        return cls(edition=_read(table, "edition", _optional(_enum(RustEdition)), None))

    def to_dict(self) -> dict[str, Any]:
        """The ``[rust]`` table, with an unset edition left out."""
        return _without_none({"edition": self.edition.value if self.edition else None})