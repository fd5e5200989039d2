"""Stylesheet compilation through libsass."""
import re
from pathlib import Path
from typing import Callable, Dict, Sequence

import rcssmin
import sass

from pagesmith.compiler.exceptions import SourceSyntaxError

STYLE_EXTENSIONS = (".scss", ".sass")

_LOCATION_RE = re.compile(r"on line (\d+)(?::(\d+))?(?: of (\S+))?")


def _unquote(value: str) -> str:
    return value.strip().strip("\"'")


def style_functions(asset_path: Callable[[str], str]) -> Dict[str, Callable[[str], str]]:
    """Named single-argument callbacks exposed to stylesheets."""

    def asset_url(asset: str) -> str:
        return f'url("{asset_path(_unquote(asset))}")'

    def resolve(asset: str) -> str:
        return asset_path(_unquote(asset))

    return {"asset_url": asset_url, "asset_path": resolve}


def compile_error(error: sass.CompileError, file_path: str) -> SourceSyntaxError:
    """Convert a libsass error into a located SourceSyntaxError."""
    message = str(error).strip()
    line = column = 0
    match = _LOCATION_RE.search(message)
    if match:
        line = int(match.group(1))
        column = int(match.group(2) or 0)
        if match.group(3) and match.group(3) != "stdin":
            file_path = match.group(3)
    first_line = message.splitlines()[0] if message else "Invalid stylesheet"
    return SourceSyntaxError(first_line, file_path=file_path, line=line, column=column)


def compile_style(
    source_file: Path,
    functions: Dict[str, Callable[[str], str]],
    include_paths: Sequence[Path] = (),
    minify: bool = False,
) -> str:
    """Compile one stylesheet to CSS text."""
    try:
        css = sass.compile(
            filename=str(source_file),
            include_paths=[str(p) for p in include_paths],
            output_style="compressed" if minify else "expanded",
            custom_functions=functions,
        )
    except sass.CompileError as e:
        raise compile_error(e, str(source_file)) from e

    if minify:
        css = rcssmin.cssmin(css)
    return css


def is_style_partial(path: Path) -> bool:
    return path.name.startswith("_")


def style_output_name(relative: Path) -> Path:
    """'site/main.scss' -> 'site/main.css'."""
    return relative.with_suffix(".css")


def find_styles(root: Path, include_partials: bool = False) -> Sequence[Path]:
    if not root.is_dir():
        return []
    found = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix not in STYLE_EXTENSIONS + (".css",):
            continue
        if not include_partials and is_style_partial(path):
            continue
        found.append(path)
    return found

