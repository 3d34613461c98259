from pathlib import Path

import pytest

from inkbook.book_settings import ConfigError
from inkbook.html_settings import (
    Code,
    Fold,
    HtmlConfig,
    Playground,
    Print,
    Search,
    SearchChapterSettings,
)

COMPLEX_HTML = {
    "theme": "./themedir",
    "default-theme": "rust",
    "smart-punctuation": True,
    "google-analytics": "123456",
    "additional-css": ["./foo/bar/baz.css"],
    "git-repository-url": "https://foo.example.com/",
    "git-repository-icon": "fa-code-fork",
    "playground": {"editable": True, "editor": "ace"},
    "redirect": {
        "index.html": "overview.html",
        "nexted/page.md": "https://example.com/",
    },
}


def test_complex_html_section():
    expected = HtmlConfig(
        smart_punctuation=True,
        google_analytics="123456",
        additional_css=[Path("./foo/bar/baz.css")],
        theme=Path("./themedir"),
        default_theme="rust",
        playground=Playground(
            editable=True, copyable=True, copy_js=True, line_numbers=False, runnable=True
        ),
        git_repository_url="https://foo.example.com/",
        git_repository_icon="fa-code-fork",
        redirect={
            "index.html": "overview.html",
            "nexted/page.md": "https://example.com/",
        },
    )
    assert HtmlConfig.from_dict(COMPLEX_HTML) == expected


def test_empty_table_gives_defaults():
    got = HtmlConfig.from_dict({})
    assert got == HtmlConfig()
    assert got.copy_fonts is True
    assert got.search is None
    assert got.input_404 is None


def test_disable_runnable():
    got = HtmlConfig.from_dict({"playground": {"runnable": False}})
    assert got.playground.runnable is False
    assert got.playground.copyable is True


def test_playpen_alias():
    got = HtmlConfig.from_dict({"playpen": {"editable": True}})
    assert got.playground.editable is True


def test_playground_and_playpen_together_is_an_error():
    with pytest.raises(ConfigError):
        HtmlConfig.from_dict({"playground": {}, "playpen": {}})


def test_print_config():
    got = HtmlConfig.from_dict({"print": {"enable": False}})
    assert got.print.enable is False
    assert got.print.page_break is True
    got = HtmlConfig.from_dict({"print": {"page-break": False}})
    assert got.print.enable is True
    assert got.print.page_break is False


def test_curly_quotes_or_smart_punctuation():
    assert HtmlConfig.from_dict({"smart-punctuation": True}).smart_punctuation_enabled() is True
    assert HtmlConfig.from_dict({"curly-quotes": True}).smart_punctuation_enabled() is True
    assert HtmlConfig().smart_punctuation_enabled() is False


def test_file_404_custom():
    got = HtmlConfig.from_dict({"input-404": "missing.md", "output-404": "missing.html"})
    assert got.input_404 == "missing.md"


def test_legacy_destination_is_ignored():
    got = HtmlConfig.from_dict({"destination": "my-book", "theme": "my-theme"})
    assert got.theme == Path("my-theme")


def test_theme_dir_default_and_custom():
    assert HtmlConfig().theme_dir(Path("/root")) == Path("/root/theme")
    assert HtmlConfig(theme=Path("custom")).theme_dir("/root") == Path("/root/custom")


def test_search_defaults_and_overrides():
    search = Search.from_dict({"limit-results": 10, "chapter": {"second": {"enable": False}}})
    assert search.limit_results == 10
    assert search.teaser_word_count == 30
    assert search.boost_title == 2
    assert search.heading_split_level == 3
    assert search.chapter == {"second": SearchChapterSettings(enable=False)}


def test_search_in_html_config():
    got = HtmlConfig.from_dict({"search": {"enable": False}})
    assert got.search == Search(enable=False)


def test_chapter_settings_default_enable_is_unset():
    assert SearchChapterSettings.from_dict({}).enable is None


def test_fold_and_code():
    assert Fold.from_dict({"enable": True, "level": 2}) == Fold(enable=True, level=2)
    assert Code.from_dict({"hidelines": {"python": "~"}}).hidelines == {"python": "~"}


def test_print_defaults():
    assert Print.from_dict({}) == Print(enable=True, page_break=True)


@pytest.mark.parametrize(
    "data",
    [
        {"theme": 5},
        {"smart-punctuation": "yes"},
        {"fold": {"level": 300}},
        {"fold": {"level": -1}},
        {"fold": {"level": True}},
        {"redirect": {"a": 1}},
        {"additional-css": "one.css"},
        {"search": {"limit-results": "many"}},
    ],
)
def test_invalid_values_are_rejected(data):
    with pytest.raises(ConfigError):
        HtmlConfig.from_dict(data)


def test_non_table_is_rejected():
    with pytest.raises(ConfigError):
        HtmlConfig.from_dict(["not", "a", "table"])