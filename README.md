# inkbook

`inkbook` is a library for books written as a collection of Markdown
chapters. It covers two jobs:

- reading and writing the book's TOML configuration, `book.toml`;
- running preprocessors over the book before it is rendered, including
  preprocessors that are external programs.

## Installation

```
pip install inkbook
```

To run the test suite, install the test extra:

```
pip install "inkbook[test]"
pytest
```

## Configuration

`inkbook.config.Config` holds the contents of `book.toml` in memory. The
`[book]`, `[build]` and `[rust]` tables become typed settings objects
(`BookConfig`, `BuildConfig` and `RustConfig` from `inkbook.book_settings`).
Every other table stays as plain data, reached with dotted keys.

```python
from inkbook.config import Config

cfg = Config.from_str('''
[book]
title = "My Book"
authors = ["Jane Doe"]

[build]
build-dir = "out"

[other-table.foo]
bar = 123
''')

cfg.book.title                      # "My Book"
cfg.build.build_dir                 # Path("out")
cfg.get("other-table.foo.bar")      # 123
cfg.get_as("other-table.foo.bar", str)  # "123"

cfg.set("output.html.theme", "./themes")
cfg.html_config().theme             # Path("./themes")
cfg.get_renderer("html")            # {"theme": "./themes"}

print(cfg.to_toml())
```

- `Config.from_disk(path)` loads a file in the same way.
- `get(key)` returns `None` for a missing key; `get_as(key, converter)`
  passes the value through `converter` and raises `ConfigError` if that fails.
- `set(index, value)` replaces anything in its way. Keys under `book.` and
  `build.` update the typed settings; a value that would make them invalid is
  ignored.
- `get_renderer(name)` and `get_preprocessor(name)` return the
  `[output.<name>]` and `[preprocessor.<name>]` tables, or `None`.
- `to_dict()` returns the configuration as plain data; the `[build]` and
  `[rust]` tables are left out while they hold only defaults. `to_toml()`
  writes that data as TOML with keys sorted.

The older flat layout is still accepted: top-level `title`, `authors`,
`source`, `description`, and `[output.html] destination`. A warning is
logged when it is used.

Invalid values raise `inkbook.book_settings.ConfigError` (a `ValueError`),
for example a non-string title or an unknown Rust edition. Errors while
loading start with `Invalid configuration file`.

### Environment overrides

`Config.update_from_env()` reads variables that start with `MDBOOK_` and
turns each one into a config key (`parse_env` does the conversion):

| Variable              | Key           |
|-----------------------|---------------|
| `MDBOOK_FOO`          | `foo`         |
| `MDBOOK_FOO__BAR`     | `foo.bar`     |
| `MDBOOK_FOO_BAR`      | `foo-bar`     |
| `MDBOOK_BOOK__TITLE`  | `book.title`  |

Each value is parsed as JSON first; if that fails it is kept as a plain
string. A JSON object given for `book` or `build` sets each of its entries.
You can pass your own mapping instead of `os.environ`:

```python
cfg.update_from_env({"MDBOOK_BOOK__TITLE": "Another Title"})
```

### Text direction

`BookConfig.realized_text_direction()` returns the explicit `text-direction`
when one is set. Otherwise `TextDirection.from_lang_code` derives it from
`language`: `ar`, `he`, `fa`, `ur`, `yi` and similar codes are right to left,
everything else left to right.

## HTML settings

`Config.html_config()` returns an `inkbook.html_settings.HtmlConfig` built
from `[output.html]`, or `None` if the table is absent or invalid (the error
is logged). It includes:

- the nested `Playground`, `Print`, `Fold`, `Code` and `Search` settings,
  with `playpen` accepted as another name for `playground`;
- `theme_dir(root)`, which is `root/theme` unless a theme is configured;
- `smart_punctuation_enabled()`, which also honours the older
  `curly-quotes` key.

## Preprocessors

`inkbook.preprocessor.Preprocessor` is the abstract base class. Subclasses
provide a `name` property and `run(ctx, book)`, which returns the processed
book. They may override `supports_renderer(renderer)`, which returns `True`
by default.

`PreprocessorContext` carries the book's root directory, its `Config`, the
renderer name and a version string (`VERSION`). `to_dict()` and
`from_dict()` convert it to and from JSON data.

`CmdPreprocessor(preprocessor_name, cmd)` hands the work to an external
program, splitting `cmd` as a shell would:

- `run(ctx, book)` writes `[context, book]` as JSON to the program's stdin
  and reads the processed book as JSON from its stdout.
- `supports_renderer(renderer)` runs `<cmd> supports <renderer>` and treats
  exit status 0 as support; a missing program means no support.
- A program that cannot start, exits with a non-zero status or prints
  invalid JSON raises `PreprocessorError`.

A program acting as a preprocessor can read its input with
`CmdPreprocessor.parse_input(sys.stdin)`, which returns the context and the
book.

`is_readme_file(path)` matches file stems equal to `readme` in any case,
such as `README.md` or `Readme.markdown`. `readme_to_index(path, source_dir)`
renames such a chapter path to `index.md` and logs a warning if an
`index.md` already exists beside it.

## What this package does not do

- It does not expand `{{#include}}`, `{{#playground}}` or `{{#title}}`
  helpers inside chapter text.
- It does not load, parse or render books: the book handed to a
  preprocessor is passed through as plain JSON data.
- It has no command-line tool.