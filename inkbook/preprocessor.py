"""Book preprocessing: the context handed to preprocessors, the preprocessor
interface, and a preprocessor that runs an external command."""

from __future__ import annotations

import json
import logging
import re
import shlex
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from inkbook.book_settings import ConfigError
from inkbook.config import Config

__all__ = [
    "CmdPreprocessor",
    "Preprocessor",
    "PreprocessorContext",
    "PreprocessorError",
    "VERSION",
    "is_readme_file",
    "readme_to_index",
]

logger = logging.getLogger(__name__)

VERSION = "0.4.43"
"""The version reported to preprocessors in their context."""

_README = re.compile(r"readme", re.IGNORECASE)


class PreprocessorError(RuntimeError):
    """Raised when a preprocessor cannot be run or its output cannot be used."""


@dataclass
class PreprocessorContext:
    """Extra information given to a preprocessor about the book being built."""

    root: Path
    config: Config
    renderer: str
    mdbook_version: str = VERSION
    chapter_titles: dict[Path, str] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def to_dict(self) -> dict[str, Any]:
        """The context as JSON data; chapter titles are not included."""
        return {
            "root": str(self.root),
            "config": self.config.to_dict(),
            "renderer": self.renderer,
            "mdbook_version": self.mdbook_version,
        }

    @classmethod
    def from_dict(cls, data: Any) -> PreprocessorContext:
        """Rebuild a context from the data written by ``to_dict``."""
        if not isinstance(data, dict):
            raise PreprocessorError("The preprocessor context must be an object")
        missing = [
            key for key in ("root", "config", "renderer", "mdbook_version") if key not in data
        ]
        if missing:
            raise PreprocessorError(f"missing field `{missing[0]}` in the preprocessor context")
        for key in ("root", "renderer", "mdbook_version"):
            if not isinstance(data[key], str):
                raise PreprocessorError(f"`{key}` must be a string, got {data[key]!r}")
        if not isinstance(data["config"], dict):
            raise PreprocessorError("`config` must be an object")
        try:
            config = Config._from_table(data["config"])
        except ConfigError as exc:
            raise PreprocessorError(f"Invalid configuration in the context: {exc}") from exc
        return cls(
            root=Path(data["root"]),
            config=config,
            renderer=data["renderer"],
            mdbook_version=data["mdbook_version"],
        )


class Preprocessor(ABC):
    """An operation run on a loaded book before it is rendered."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The preprocessor's name."""

    @abstractmethod
    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        """Process ``book`` and return the updated book."""

    def supports_renderer(self, renderer: str) -> bool:
        """Whether this preprocessor should run for ``renderer``; always true by default."""
        return True


def _describe_status(returncode: int) -> str:
    if returncode < 0:
        return f"signal: {-returncode}"
    return f"exit status: {returncode}"


@dataclass(frozen=True)
class CmdPreprocessor(Preprocessor):
    """A preprocessor that runs an external command.

    ``supports_renderer`` runs ``<cmd> supports <renderer>`` and treats exit
    code 0 as support. ``run`` writes ``[context, book]`` as JSON to the
    command's stdin and reads the processed book as JSON from its stdout.
    """

    preprocessor_name: str
    cmd: str

    @property
    def name(self) -> str:
        return self.preprocessor_name

    @classmethod
    def parse_input(cls, reader: IO[Any]) -> tuple[PreprocessorContext, Any]:
        """Read the ``(context, book)`` pair written by ``write_input``."""
        try:
            data = json.load(reader)
        except ValueError as exc:
            raise PreprocessorError(f"Unable to parse the input: {exc}") from exc
        if not isinstance(data, list) or len(data) != 2:
            raise PreprocessorError(
                "Unable to parse the input: expected a [context, book] pair"
            )
        ctx_data, book = data
        return PreprocessorContext.from_dict(ctx_data), book

    def write_input(self, writer: IO[str], book: Any, ctx: PreprocessorContext) -> None:
        """Write ``[context, book]`` as JSON to ``writer``."""
        json.dump([ctx.to_dict(), book], writer)

    def _input_bytes(self, book: Any, ctx: PreprocessorContext) -> bytes:
        return json.dumps([ctx.to_dict(), book]).encode("utf-8")

    def command(self) -> list[str]:
        """The command line split into program and arguments."""
        try:
            words = shlex.split(self.cmd)
        except ValueError as exc:
            raise PreprocessorError(f"Unable to parse the command {self.cmd!r}: {exc}") from exc
        if not words:
            raise PreprocessorError("Command string was empty")
        return words

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        argv = self.command()
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
            )
        except OSError as exc:
            raise PreprocessorError(
                f'Unable to start the "{self.name}" preprocessor. Is it installed?'
            ) from exc

        try:
            stdout, _ = process.communicate(self._input_bytes(book, ctx))
        except OSError as exc:
            process.kill()
            process.wait()
            raise PreprocessorError(
                f'Error waiting for the "{self.name}" preprocessor to complete'
            ) from exc

        logger.debug("%s exited with status %s", self.cmd, process.returncode)
        if process.returncode != 0:
            raise PreprocessorError(
                f'The "{self.name}" preprocessor exited unsuccessfully with '
                f"{_describe_status(process.returncode)} status"
            )

        try:
            return json.loads(stdout)
        except ValueError as exc:
            raise PreprocessorError(
                f'Unable to parse the preprocessed book from "{self.name}" processor'
            ) from exc

    def supports_renderer(self, renderer: str) -> bool:
        logger.debug(
            'Checking if the "%s" preprocessor supports "%s"', self.name, renderer
        )
        try:
            argv = self.command()
        except PreprocessorError as exc:
            logger.warning(
                'Unable to create the command for the "%s" preprocessor, %s', self.name, exc
            )
            return False

        try:
            completed = subprocess.run(
                [*argv, "supports", renderer],
                stdin=subprocess.DEVNULL,
                check=False,
            )
        except FileNotFoundError:
            logger.warning(
                'The command wasn\'t found, is the "%s" preprocessor installed?', self.name
            )
            logger.warning("\tCommand: %s", self.cmd)
            return False
        except OSError:
            return False
        return completed.returncode == 0


def is_readme_file(path: str | Path) -> bool:
    """Whether the file stem of ``path`` is ``readme``, in any case."""
    return _README.fullmatch(Path(path).stem) is not None


def readme_to_index(path: str | Path, source_dir: str | Path) -> Path:
    """The chapter path with a README file renamed to ``index.md``.

    A warning is logged when an ``index.md`` already sits beside the README
    under ``source_dir``. Other paths are returned unchanged.
    """
    path = Path(path)
    if not is_readme_file(path):
        return path
    renamed = path.with_name("index.md")
    index_md = Path(source_dir) / renamed
    if index_md.exists():
        logger.warning(
            'It seems that there are both %r and index.md under "%s".',
            path.name,
            index_md.parent,
        )
        logger.warning(
            "Files named %r are converted into index.html by default. It may cause",
            path.name,
        )
        logger.warning("unexpected behavior if putting both files under the same directory.")
        logger.warning("To solve the warning, try to rearrange the book structure or disable")
        logger.warning('the "index" preprocessor to stop the conversion.')
    return renamed