import io
import json
import logging
import shlex
import sys
from pathlib import Path

import pytest

from inkbook.config import Config
from inkbook.preprocessor import (
    VERSION,
    CmdPreprocessor,
    Preprocessor,
    PreprocessorContext,
    PreprocessorError,
    is_readme_file,
    readme_to_index,
)

SAMPLE_BOOK = {
    "sections": [
        {"Chapter": {"name": "Intro", "content": "# Intro\n", "path": "README.md"}},
        "Separator",
    ]
}


def python_cmd(script):
    return shlex.join([sys.executable, "-c", script])


def make_ctx(renderer="some-renderer"):
    config = Config.from_str('[book]\ntitle = "Some Book"\n\n[output.html]\ntheme = "t"\n')
    return PreprocessorContext(Path("/book/root"), config, renderer)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("path/to/Readme.md", True),
        ("path/to/README.md", True),
        ("path/to/rEaDmE.md", True),
        ("path/to/README.markdown", True),
        ("path/to/README", True),
        ("path/to/README-README.md", False),
    ],
)
def test_file_stem_exactly_matches_readme_case_insensitively(path, expected):
    assert is_readme_file(path) is expected


def test_readme_to_index_renames(tmp_path):
    assert readme_to_index("first/README.md", tmp_path) == Path("first/index.md")


def test_readme_to_index_leaves_other_files(tmp_path):
    assert readme_to_index("first/intro.md", tmp_path) == Path("first/intro.md")


def test_readme_to_index_warns_on_conflict(tmp_path, caplog):
    (tmp_path / "first").mkdir()
    (tmp_path / "first" / "index.md").write_text("x")
    with caplog.at_level(logging.WARNING, logger="inkbook.preprocessor"):
        got = readme_to_index("first/README.md", tmp_path)
    assert got == Path("first/index.md")
    assert any("index.md" in record.getMessage() for record in caplog.records)


def test_round_trip_write_and_parse_input():
    cmd = CmdPreprocessor("test", "test")
    ctx = make_ctx()
    buffer = io.StringIO()
    cmd.write_input(buffer, SAMPLE_BOOK, ctx)
    buffer.seek(0)

    got_ctx, got_book = CmdPreprocessor.parse_input(buffer)

    assert got_book == SAMPLE_BOOK
    assert got_ctx == ctx
    assert got_ctx.config.book.title == "Some Book"


def test_context_to_dict_contents():
    data = make_ctx("html").to_dict()
    assert data["renderer"] == "html"
    assert data["mdbook_version"] == VERSION
    assert data["config"]["book"]["title"] == "Some Book"
    assert Path(data["root"]) == Path("/book/root")


def test_context_from_dict_missing_field():
    data = make_ctx().to_dict()
    del data["renderer"]
    with pytest.raises(PreprocessorError, match="renderer"):
        PreprocessorContext.from_dict(data)


def test_parse_input_rejects_invalid_json():
    with pytest.raises(PreprocessorError, match="Unable to parse the input"):
        CmdPreprocessor.parse_input(io.StringIO("not json"))


def test_parse_input_rejects_wrong_shape():
    with pytest.raises(PreprocessorError, match="Unable to parse the input"):
        CmdPreprocessor.parse_input(io.StringIO("{}"))


def test_command_splits_words():
    cmd = CmdPreprocessor("x", "prog --flag 'two words'")
    assert cmd.command() == ["prog", "--flag", "two words"]


def test_empty_command_is_an_error():
    with pytest.raises(PreprocessorError, match="Command string was empty"):
        CmdPreprocessor("x", "   ").command()


def test_name_is_reported():
    assert CmdPreprocessor("nop-preprocessor", "true").name == "nop-preprocessor"


def test_run_returns_processed_book():
    script = (
        "import json, sys\n"
        "ctx, book = json.load(sys.stdin)\n"
        "book['renderer'] = ctx['renderer']\n"
        "json.dump(book, sys.stdout)\n"
    )
    cmd = CmdPreprocessor("echoer", python_cmd(script))
    got = cmd.run(make_ctx("html"), {"sections": []})
    assert got == {"sections": [], "renderer": "html"}


def test_run_failure_reports_status():
    cmd = CmdPreprocessor("nop-preprocessor", python_cmd("import sys; sys.exit(1)"))
    with pytest.raises(PreprocessorError) as info:
        cmd.run(make_ctx(), SAMPLE_BOOK)
    assert str(info.value) == (
        'The "nop-preprocessor" preprocessor exited unsuccessfully with exit status: 1 status'
    )


def test_run_bad_output_is_an_error():
    cmd = CmdPreprocessor("garbage", python_cmd("print('nope')"))
    with pytest.raises(PreprocessorError, match="Unable to parse the preprocessed book"):
        cmd.run(make_ctx(), SAMPLE_BOOK)


def test_run_missing_program():
    cmd = CmdPreprocessor("missing", "trduyvbhijnorgevfuhn")
    with pytest.raises(PreprocessorError, match="Is it installed"):
        cmd.run(make_ctx(), SAMPLE_BOOK)


SUPPORTS_SCRIPT = (
    "import sys\n"
    "sys.exit(1 if sys.argv[1:] == ['supports', 'not-supported'] else 0)\n"
)


def test_example_supports_whatever():
    cmd = CmdPreprocessor("nop-preprocessor", python_cmd(SUPPORTS_SCRIPT))
    assert cmd.supports_renderer("whatever") is True


def test_example_doesnt_support_not_supported():
    cmd = CmdPreprocessor("nop-preprocessor", python_cmd(SUPPORTS_SCRIPT))
    assert cmd.supports_renderer("not-supported") is False


def test_supports_renderer_missing_program():
    cmd = CmdPreprocessor("missing", "trduyvbhijnorgevfuhn")
    assert cmd.supports_renderer("html") is False


def test_supports_renderer_empty_command():
    assert CmdPreprocessor("empty", "").supports_renderer("html") is False


class _Upper(Preprocessor):
    @property
    def name(self):
        return "upper"

    def run(self, ctx, book):
        return {key: value.upper() for key, value in book.items()}


def test_custom_preprocessor_defaults():
    pre = _Upper()
    assert pre.supports_renderer("anything") is True
    assert pre.run(make_ctx(), {"a": "text"}) == {"a": "TEXT"}


def test_write_input_is_json_pair():
    buffer = io.StringIO()
    CmdPreprocessor("t", "t").write_input(buffer, [1, 2], make_ctx("epub"))
    data = json.loads(buffer.getvalue())
    assert data[1] == [1, 2]
    assert data[0]["renderer"] == "epub"