"""Settings for the ``[output.html]`` table of ``book.toml``."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from inkbook.book_settings import (
    ConfigError,
    _boolean,
    _optional,
    _path,
    _path_list,
    _read,
    _string,
    _table,
)


def _unsigned(bits: int) -> Callable[[Any, str], int]:
    limit = (1 << bits) - 1

    def parse(value: Any, key: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer, got {value!r}")
        if not 0 <= value <= limit:
            raise ConfigError(f"`{key}` must be between 0 and {limit}, got {value}")
        return value

    return parse


_u8 = _unsigned(8)
_u32 = _unsigned(32)


def _string_map(value: Any, key: str) -> dict[str, str]:
    table = _table(value, key)
    return {_string(name, key): _string(item, f"{key}.{name}") for name, item in table.items()}


@dataclass
class Print:
    """How the print icon, ``print.html`` and ``print.css`` are rendered."""

    enable: bool = True
    page_break: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Print:
        """Build from a ``print`` table; missing keys take their defaults."""
        table = _table(data, "print")
        default = cls()
        return cls(
            enable=_read(table, "enable", _boolean, default.enable),
            page_break=_read(table, "page-break", _boolean, default.page_break),
        )


@dataclass
class Fold:
    """How chapters in the sidebar are folded."""

    enable: bool = False
    level: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Fold:
        """Build from a ``fold`` table; missing keys take their defaults."""
        table = _table(data, "fold")
        default = cls()
        return cls(
            enable=_read(table, "enable", _boolean, default.enable),
            level=_read(table, "level", _u8, default.level),
        )


@dataclass
class Playground:
    """How the HTML renderer handles the playground."""

    editable: bool = False
    copyable: bool = True
    copy_js: bool = True
    line_numbers: bool = False
    runnable: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Playground:
        """Build from a ``playground`` table; missing keys take their defaults."""
        table = _table(data, "playground")
        default = cls()
        return cls(
            editable=_read(table, "editable", _boolean, default.editable),
            copyable=_read(table, "copyable", _boolean, default.copyable),
            copy_js=_read(table, "copy-js", _boolean, default.copy_js),
            line_numbers=_read(table, "line-numbers", _boolean, default.line_numbers),
            runnable=_read(table, "runnable", _boolean, default.runnable),
        )


@dataclass
class Code:
    """How the HTML renderer handles code blocks."""

    hidelines: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Code:
        """Build from a ``code`` table; missing keys take their defaults."""
        table = _table(data, "code")
        return cls(hidelines=_read(table, "hidelines", _string_map, {}))


@dataclass
class SearchChapterSettings:
    """Search options for one chapter or directory."""

    enable: bool | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchChapterSettings:
        """Build from a chapter settings table."""
        table = _table(data, "search.chapter")
        return cls(enable=_read(table, "enable", _optional(_boolean), None))


def _chapter_map(value: Any, key: str) -> dict[str, SearchChapterSettings]:
    table = _table(value, key)
    return {
        _string(name, key): SearchChapterSettings.from_dict(item)
        for name, item in table.items()
    }


@dataclass
class Search:
    """Settings of the search feature of the HTML renderer."""

    enable: bool = True
    limit_results: int = 30
    teaser_word_count: int = 30
    use_boolean_and: bool = False
    boost_title: int = 2
    boost_hierarchy: int = 1
    boost_paragraph: int = 1
    expand: bool = True
    heading_split_level: int = 3
    copy_js: bool = True
    chapter: dict[str, SearchChapterSettings] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Search:
        """Build from a ``search`` table; missing keys take their defaults."""
        table = _table(data, "search")
        default = cls()
        return cls(
            enable=_read(table, "enable", _boolean, default.enable),
            limit_results=_read(table, "limit-results", _u32, default.limit_results),
            teaser_word_count=_read(table, "teaser-word-count", _u32, default.teaser_word_count),
            use_boolean_and=_read(table, "use-boolean-and", _boolean, default.use_boolean_and),
            boost_title=_read(table, "boost-title", _u8, default.boost_title),
            boost_hierarchy=_read(table, "boost-hierarchy", _u8, default.boost_hierarchy),
            boost_paragraph=_read(table, "boost-paragraph", _u8, default.boost_paragraph),
            expand=_read(table, "expand", _boolean, default.expand),
            heading_split_level=_read(
                table, "heading-split-level", _u8, default.heading_split_level
            ),
            copy_js=_read(table, "copy-js", _boolean, default.copy_js),
            chapter=_read(table, "chapter", _chapter_map, {}),
        )


def _sub(parse: Callable[[Mapping[str, Any]], Any]) -> Callable[[Any, str], Any]:
    def read(value: Any, key: str) -> Any:
        return parse(value)

    return read


_optional_string = _optional(_string)


@dataclass
class HtmlConfig:
    """Settings of the HTML renderer."""

    theme: Path | None = None
    default_theme: str | None = None
    preferred_dark_theme: str | None = None
    smart_punctuation: bool = False
    curly_quotes: bool = False
    mathjax_support: bool = False
    copy_fonts: bool = True
    google_analytics: str | None = None
    additional_css: list[Path] = field(default_factory=list)
    additional_js: list[Path] = field(default_factory=list)
    fold: Fold = field(default_factory=Fold)
    playground: Playground = field(default_factory=Playground)
    code: Code = field(default_factory=Code)
    print: Print = field(default_factory=Print)
    no_section_label: bool = False
    search: Search | None = None
    git_repository_url: str | None = None
    git_repository_icon: str | None = None
    input_404: str | None = None
    site_url: str | None = None
    cname: str | None = None
    edit_url_template: str | None = None
    live_reload_endpoint: str | None = None
    redirect: dict[str, str] = field(default_factory=dict)
    hash_files: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HtmlConfig:
        """Build from an ``[output.html]`` table; unknown keys are ignored."""
        table = _table(data, "output.html")
        if "playground" in table and "playpen" in table:
            raise ConfigError("duplicate field `playground`")
        playground_key = "playpen" if "playpen" in table else "playground"
        default = cls()
        return cls(
            theme=_read(table, "theme", _optional(_path), default.theme),
            default_theme=_read(table, "default-theme", _optional_string, None),
            preferred_dark_theme=_read(table, "preferred-dark-theme", _optional_string, None),
            smart_punctuation=_read(table, "smart-punctuation", _boolean, False),
            curly_quotes=_read(table, "curly-quotes", _boolean, False),
            mathjax_support=_read(table, "mathjax-support", _boolean, False),
            copy_fonts=_read(table, "copy-fonts", _boolean, True),
            google_analytics=_read(table, "google-analytics", _optional_string, None),
            additional_css=_read(table, "additional-css", _path_list, []),
            additional_js=_read(table, "additional-js", _path_list, []),
            fold=_read(table, "fold", _sub(Fold.from_dict), default.fold),
            playground=_read(
                table, playground_key, _sub(Playground.from_dict), default.playground
            ),
            code=_read(table, "code", _sub(Code.from_dict), default.code),
            print=_read(table, "print", _sub(Print.from_dict), default.print),
            no_section_label=_read(table, "no-section-label", _boolean, False),
            search=_read(table, "search", _optional(_sub(Search.from_dict)), None),
            git_repository_url=_read(table, "git-repository-url", _optional_string, None),
            git_repository_icon=_read(table, "git-repository-icon", _optional_string, None),
            input_404=_read(table, "input-404", _optional_string, None),
            site_url=_read(table, "site-url", _optional_string, None),
            cname=_read(table, "cname", _optional_string, None),
            edit_url_template=_read(table, "edit-url-template", _optional_string, None),
            live_reload_endpoint=_read(table, "live-reload-endpoint", _optional_string, None),
            redirect=_read(table, "redirect", _string_map, {}),
            hash_files=_read(table, "hash-files", _boolean, False),
        )

    def theme_dir(self, root: str | Path) -> Path:
        """The theme directory under ``root``, ``theme`` unless configured."""
        root = Path(root)
        return root / self.theme if self.theme is not None else root / "theme"

    def smart_punctuation_enabled(self) -> bool:
        """Whether smart punctuation is on, by either of its two names."""
        return self.smart_punctuation or self.curly_quotes