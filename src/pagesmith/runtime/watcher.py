"""Incremental rebuilds driven by filesystem changes."""
import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from watchfiles import Change, awatch

from pagesmith.compiler.exceptions import PagesmithError
from pagesmith.compiler.routes import RENDERABLE_EXTENSIONS, should_render
from pagesmith.compiler.templates import TemplateCompiler, compile_pages, find_roots
from pagesmith.runtime.assets import SCRIPT_EXTENSIONS, AssetPipeline, is_asset_partial
from pagesmith.runtime.context import BuildContext, StageResult
from pagesmith.runtime.dependencies import normalize
from pagesmith.runtime.fingerprint import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

WATCH_DEBOUNCE_MS = 500

FileChange = Tuple[Change, str]


def _within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


class Rebuilder:
    """Maps a batch of file changes onto the smallest set of recompiles.

    Holds on to one template compiler and asset pipeline for the whole
    watch session so the dependency cache keeps accumulating edges.
    """

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.layout = context.layout
        self.pipeline = AssetPipeline(context)
        self.compiler = TemplateCompiler(context)

    async def handle(self, changes: Iterable[FileChange]) -> StageResult:
        layout = self.layout
        result = StageResult()

        scripts: List[Path] = []
        images: List[Path] = []
        templates: List[Tuple[Change, Path]] = []
        styles_changed = vendor_changed = False

        for change, raw_path in sorted(changes, key=lambda c: c[1]):
            path = Path(raw_path).resolve()
            removed = change == Change.deleted
            if _within(path, layout.views_src):
                if path.name.lower().endswith(RENDERABLE_EXTENSIONS):
                    templates.append((change, path))
            elif _within(path, layout.scripts_src):
                if (
                    not removed
                    and path.suffix.lower() in SCRIPT_EXTENSIONS
                    and not is_asset_partial(path.relative_to(layout.scripts_src))
                ):
                    scripts.append(path)
            elif _within(path, layout.styles_src):
                styles_changed = True
            elif _within(path, layout.images_src):
                if not removed and path.suffix.lower() in IMAGE_EXTENSIONS:
                    images.append(path)
            elif _within(path, layout.vendor_src):
                vendor_changed = True

        if images:
            result.merge(await self.pipeline.publish_images(images))
        if vendor_changed and self.context.production:
            result.merge(await self.pipeline.publish_vendor())

        roots: Set[str] = set()
        routes_changed = False
        if templates:
            routes_changed = self.context.rebuild_routes()
            if routes_changed:
                logger.info("Route table changed, recompiling all scripts and pages")
                scripts = self.pipeline.find_scripts()
            roots |= self._template_roots(templates, everything=routes_changed)

        compiled = StageResult()
        if scripts:
            compiled.merge(await self.pipeline.compile_scripts(scripts))
        if styles_changed:
            compiled.merge(await self.pipeline.compile_styles())
        result.merge(compiled)

        rebuilt = {normalize(path) for path in scripts}
        if styles_changed:
            rebuilt.update(normalize(path) for path in self.pipeline.find_styles())
        pending = list(result.output_files)
        while pending:
            # assets that resolved a republished output embed its old name
            dependents: Set[str] = set()
            for output in pending:
                dependents |= self.context.dependencies.dependents_of(output)
            roots |= {d for d in dependents if _within(Path(d), layout.views_src)}
            pending = await self._recompile_dependent_assets(dependents - rebuilt - roots, result)
            rebuilt |= dependents

        existing = sorted(Path(root) for root in roots if Path(root).is_file())
        if existing:
            result.merge(await compile_pages(self.context, existing, self.compiler))
        return result

    async def _recompile_dependent_assets(self, sources: Set[str], result: StageResult) -> List[Path]:
        layout = self.layout
        stale = sorted(Path(source) for source in sources if Path(source).is_file())
        stale_scripts = [path for path in stale if _within(path, layout.scripts_src)]
        stale_styles = [path for path in stale if _within(path, layout.styles_src)]
        compiled = StageResult()
        if stale_scripts:
            compiled.merge(await self.pipeline.compile_scripts(stale_scripts))
        if stale_styles:
            compiled.merge(await self.pipeline.compile_styles(stale_styles))
        result.merge(compiled)
        return compiled.output_files

    def _template_roots(self, templates: List[Tuple[Change, Path]], everything: bool) -> Set[str]:
        views = self.layout.views_src
        roots: Set[str] = set()
        if everything:
            roots.update(str(root) for root in find_roots(self.context))
        for change, path in templates:
            roots |= self.context.dependencies.dependents_of(path)
            if change == Change.deleted:
                self.context.dependencies.forget(path)
                roots.discard(str(path))
            elif should_render(path.relative_to(views).as_posix()):
                roots.add(str(path))
        return roots


async def watch_project(
    context: BuildContext,
    stop_event: Optional[asyncio.Event] = None,
    rebuilder: Optional[Rebuilder] = None,
) -> None:
    """Rebuild affected outputs until stop_event is set.

    Errors that only concern the files being rebuilt are logged and the
    loop keeps going.
    """
    rebuilder = rebuilder or Rebuilder(context)
    src_dir = context.layout.src_dir
    logger.info(f"Watching {src_dir} for changes...")
    async for changes in awatch(src_dir, debounce=WATCH_DEBOUNCE_MS, stop_event=stop_event):
        try:
            result = await rebuilder.handle(changes)
        except (PagesmithError, UnicodeDecodeError) as e:
            logger.error(f"Rebuild failed: {e}")
            continue
        if result.failures:
            logger.warning(f"Rebuild finished with {len(result.failures)} error(s)")
