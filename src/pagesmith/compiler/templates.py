"""Page rendering through jinja2 with dependency reporting."""
import logging
import re
import traceback
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound, TemplateSyntaxError
from markupsafe import Markup

from pagesmith.compiler.exceptions import FileSystemError, PagesmithError, SourceSyntaxError
from pagesmith.compiler.routes import RENDERABLE_EXTENSIONS, canonical_path, iter_templates, should_render
from pagesmith.runtime import files
from pagesmith.runtime.context import BuildContext, StageResult
from pagesmith.runtime.fingerprint import logical_asset_path
from pagesmith.runtime.logging import log_compiled

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def squish(text: Any) -> str:
    """Collapse runs of whitespace into single spaces and trim the ends."""
    return _WHITESPACE_RE.sub(" ", str(text)).strip()


class TrackingLoader(FileSystemLoader):
    """FileSystemLoader that reports every file it reads while tracking."""

    def __init__(self, searchpath: str) -> None:
        super().__init__(searchpath)
        self._seen: Optional[List[str]] = None

    @contextmanager
    def tracking(self) -> Iterator[List[str]]:
        seen: List[str] = []
        self._seen = seen
        try:
            yield seen
        finally:
            self._seen = None

    def get_source(self, environment, template):
        source, filename, uptodate = super().get_source(environment, template)
        if self._seen is not None:
            self._seen.append(filename)
        return source, filename, uptodate


def output_page(context: BuildContext, root_file: Path) -> Path:
    """'views/posts/index.jinja' -> '<dest>/posts/index.html'."""
    relative = root_file.relative_to(context.layout.views_src)
    name = relative.name
    for extension in RENDERABLE_EXTENSIONS:
        if name.lower().endswith(extension):
            name = name[: -len(extension)]
            break
    if not name.lower().endswith(".html"):
        name += ".html"
    return context.layout.dest_dir / relative.parent / name


def _template_location(error: BaseException, candidates: Iterable[str]) -> Tuple[str, int]:
    """Innermost template frame of a render-time traceback."""
    known = set(candidates)
    for frame in reversed(traceback.extract_tb(error.__traceback__)):
        if frame.filename in known:
            return frame.filename, frame.lineno or 0
    return "", 0


class TemplateCompiler:
    """Renders root templates and records what each one read."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.loader = TrackingLoader(str(context.layout.views_src))
        # no template cache: every include goes through the loader so it is reported
        self.env = Environment(loader=self.loader, autoescape=True, cache_size=0)
        self.env.filters["squish"] = squish

    def template_name(self, root_file: Path) -> str:
        return root_file.relative_to(self.context.layout.views_src).as_posix()

    def base_locals(self) -> Dict[str, Any]:
        context = self.context
        values: Dict[str, Any] = dict(context.environment_flags())
        values["environment"] = context.environment
        values.update(context.routes)
        values["routes"] = dict(context.routes)
        values["squish"] = squish
        return values

    def compile(
        self, root_file: Path, extra_locals: Optional[Dict[str, Any]] = None
    ) -> Tuple[bytes, List[str]]:
        """Render root_file; returns the page bytes and the files it depended on.

        The dependency cache is only updated when rendering succeeds.
        """
        root_file = root_file.resolve()
        layout = self.context.layout
        asset_files: List[str] = []

        def record_lookup(logical: str) -> None:
            asset_files.append(str(layout.output_file(logical)))

        resolver = self.context.resolver.bind(record_lookup)

        def asset_path(name: str) -> str:
            return resolver.asset_path(name)

        def inline_asset(name: str) -> Markup:
            logical = logical_asset_path(name)
            physical = resolver.resolve(logical)
            target = layout.output_file(physical)
            try:
                return Markup(target.read_text(encoding="utf-8"))
            except OSError as e:
                raise SourceSyntaxError(f"Cannot inline {name}: {e.strerror or e}") from e

        values = self.base_locals()
        values["asset_path"] = asset_path
        values["inline_asset"] = inline_asset
        values["canonical_path"] = canonical_path(self.template_name(root_file))
        if extra_locals:
            values.update(extra_locals)

        with self.loader.tracking() as seen:
            try:
                template = self.env.get_template(self.template_name(root_file))
                html = template.render(values)
            except TemplateSyntaxError as e:
                raise SourceSyntaxError(
                    e.message or str(e), file_path=e.filename or str(root_file), line=e.lineno or 0
                ) from e
            except TemplateNotFound as e:
                file_path, line = _template_location(e, seen)
                raise SourceSyntaxError(
                    f"Template not found: {e.name}", file_path=file_path or str(root_file), line=line
                ) from e
            except SourceSyntaxError as e:
                if not e.file_path:
                    e.file_path, e.line = _template_location(e, seen)
                    e.file_path = e.file_path or str(root_file)
                raise
            except (FileSystemError, OSError):
                raise
            except (
                TemplateError,
                PagesmithError,
                ArithmeticError,
                LookupError,
                TypeError,
                ValueError,
                RecursionError,
            ) as e:
                file_path, line = _template_location(e, seen)
                raise SourceSyntaxError(
                    f"{type(e).__name__}: {e}", file_path=file_path or str(root_file), line=line
                ) from e

        dependencies = [f for f in seen if Path(f).resolve() != root_file] + asset_files
        self.context.dependencies.record(root_file, dependencies)
        return html.encode("utf-8"), dependencies


def find_roots(context: BuildContext) -> List[Path]:
    """Every renderable template in scan order."""
    views = context.layout.views_src
    return [
        path.resolve()
        for path in iter_templates(views)
        if should_render(path.relative_to(views).as_posix())
    ]


async def compile_pages(
    context: BuildContext, roots: Iterable[Path], compiler: Optional[TemplateCompiler] = None
) -> StageResult:
    """Render and write each root; a failing root doesn't stop its siblings."""
    compiler = compiler or TemplateCompiler(context)
    result = StageResult()
    for root_file in roots:
        try:
            html, _ = compiler.compile(root_file)
        except SourceSyntaxError as e:
            logger.error(str(e))
            result.failures.append(e)
            continue
        destination = output_page(context, root_file)
        await files.write_bytes(destination, html)
        logical = context.layout.logical_path(destination)
        log_compiled(logical)
        result.outputs.append(logical)
        result.output_files.append(destination)
    return result
