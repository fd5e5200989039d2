"""Route table derived from the views tree."""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional

RENDERABLE_EXTENSIONS = (".html", ".jinja", ".j2")
PARTIAL_PREFIX = "_"
PARTIAL_SUFFIXES = (".partial", ".layout")
LAYOUTS_DIR = "layouts"
ROOT_HELPER = "root_path"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteEntry:
    """A renderable template and the route it is published under."""

    helper_name: str
    canonical_path: str
    source_file: str


def is_partial(relative_path: str) -> bool:
    """Whether a views-relative path is include-only."""
    path = PurePosixPath(relative_path)
    if any(part.startswith(PARTIAL_PREFIX) for part in path.parts):
        return True
    if LAYOUTS_DIR in path.parts[:-1]:
        return True
    return path.stem.lower().endswith(PARTIAL_SUFFIXES)


def should_render(relative_path: str) -> bool:
    """Whether a views-relative path produces a page."""
    if not relative_path.lower().endswith(RENDERABLE_EXTENSIONS):
        return False
    return not is_partial(relative_path)


def canonical_path(relative_path: str) -> str:
    """'/about' for 'about.jinja', '/posts/' for 'posts/index.jinja', '/' for 'index.html'."""
    path = PurePosixPath(relative_path.lstrip("/"))
    stem = path.name
    for extension in RENDERABLE_EXTENSIONS:
        if stem.lower().endswith(extension):
            stem = stem[: -len(extension)]
            break
    if stem == "index":
        stem = ""
    parent = path.parent.as_posix()
    prefix = "" if parent == "." else "/" + parent
    return f"{prefix}/{stem}"


def helper_name(canonical: str) -> str:
    """'about_path' for '/about'; the tree root is always 'root_path'."""
    segments = [segment for segment in canonical.split("/") if segment]
    if not segments:
        return ROOT_HELPER
    return "_".join(segments + ["path"]).lower()


def route_for(relative_path: str, source_file: str = "") -> Optional[RouteEntry]:
    """Route entry for a views-relative path, None when it isn't renderable."""
    if not should_render(relative_path):
        return None
    canonical = canonical_path(relative_path)
    return RouteEntry(
        helper_name=helper_name(canonical),
        canonical_path=canonical,
        source_file=source_file or relative_path,
    )


def iter_templates(root_dir: Path) -> List[Path]:
    """All files below root_dir in a stable order."""
    if not root_dir.is_dir():
        return []
    return sorted(p for p in root_dir.rglob("*") if p.is_file())


def build_route_entries(root_dir: Path) -> List[RouteEntry]:
    """Scan the views tree and return every route entry in scan order."""
    entries = []
    for template in iter_templates(root_dir):
        relative = template.relative_to(root_dir).as_posix()
        entry = route_for(relative, str(template))
        if entry is not None:
            entries.append(entry)
    return entries


def route_table(entries: Iterable[RouteEntry]) -> Dict[str, str]:
    """Collapse entries into helper_name -> canonical_path.

    Later entries overwrite earlier ones sharing a helper name; the
    collision is logged.
    """
    table = {ROOT_HELPER: "/"}
    sources: Dict[str, str] = {}
    for entry in entries:
        previous = sources.get(entry.helper_name)
        if previous is not None:
            logger.warning(
                f"Route helper {entry.helper_name} from {entry.source_file} "
                f"overrides {previous}"
            )
        sources[entry.helper_name] = entry.source_file
        table[entry.helper_name] = entry.canonical_path
    return table


def build_route_table(root_dir: Path) -> Dict[str, str]:
    """Route helpers for every renderable template below root_dir."""
    return route_table(build_route_entries(root_dir))


def format_route_table(table: Dict[str, str]) -> List[str]:
    """Lines of 'helper => path' aligned on the longest helper name."""
    import click

    if not table:
        return []
    width = max(len(name) for name in table)
    return [
        f"{click.style(name.ljust(width), fg='blue')} "
        f"{click.style('=>', dim=True)} {click.style(path, fg='yellow')}"
        for name, path in table.items()
    ]
