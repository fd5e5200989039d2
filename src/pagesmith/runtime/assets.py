"""Asset pipeline: scripts, styles, images and vendor passthrough."""
import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import rjsmin

from pagesmith.compiler.exceptions import SourceSyntaxError
from pagesmith.compiler.injector import inject_constants
from pagesmith.compiler.styles import (
    compile_style,
    find_styles,
    is_style_partial,
    style_functions,
    style_output_name,
)
from pagesmith.runtime import files
from pagesmith.runtime.context import BuildContext, StageResult
from pagesmith.runtime.fingerprint import IMAGE_EXTENSIONS, ReferenceResolver
from pagesmith.runtime.logging import log_compiled

logger = logging.getLogger(__name__)

SCRIPT_EXTENSIONS = (".js",)


def is_asset_partial(relative: Path) -> bool:
    """Include-only when any segment starts with an underscore."""
    return any(part.startswith("_") for part in relative.parts)


def decode_source(content: bytes, file_path: str) -> str:
    """UTF-8 text of a source file; bad bytes are a located syntax error."""
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        before = content[: e.start]
        line = before.count(b"\n") + 1
        column = e.start - (before.rfind(b"\n") + 1) + 1
        raise SourceSyntaxError(
            f"Invalid UTF-8 byte {content[e.start:e.start + 1]!r}: {e.reason}",
            file_path=file_path,
            line=line,
            column=column,
        ) from e


def _scan(root: Path, extensions: Iterable[str]) -> List[Path]:
    if not root.is_dir():
        return []
    wanted = tuple(extensions)
    return [
        path
        for path in sorted(root.rglob("*"))
        if path.is_file() and path.suffix.lower() in wanted
        and not is_asset_partial(path.relative_to(root))
    ]


class AssetPipeline:
    """Compiles asset sources into the output tree.

    Every compiled output goes through the fingerprint store, so later
    stages resolve references to whatever name was actually written.
    """

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.layout = context.layout

    def find_scripts(self) -> List[Path]:
        return _scan(self.layout.scripts_src, SCRIPT_EXTENSIONS)

    def find_styles(self) -> List[Path]:
        return list(find_styles(self.layout.styles_src))

    def find_images(self) -> List[Path]:
        return _scan(self.layout.images_src, IMAGE_EXTENSIONS)

    async def _publish(self, logical: str, content: bytes) -> Path:
        """Write compiled content under its (possibly fingerprinted) name."""
        store = self.context.fingerprints
        previous = store.get(logical)
        physical = store.on_compiled(logical, content)
        await files.write_bytes(self.layout.output_file(physical), content)
        if previous and previous != physical:
            await files.remove(self.layout.output_file(previous))
        log_compiled(logical)
        return self.layout.output_file(logical)

    def _tracking_resolver(self) -> Tuple[ReferenceResolver, List[str]]:
        """Resolver that collects the output file behind every lookup."""
        looked_up: List[str] = []

        def record_lookup(logical: str) -> None:
            looked_up.append(str(self.layout.output_file(logical)))

        return self.context.resolver.bind(record_lookup), looked_up

    async def compile_script(self, source_file: Path) -> Path:
        """Inject constants, minify in production and publish one script."""
        source = decode_source(await files.read_bytes(source_file), str(source_file))
        resolver, looked_up = self._tracking_resolver()
        script = inject_constants(
            source,
            self.context.routes,
            resolver.asset_path,
            file_path=str(source_file),
        )
        if self.context.production:
            script = rjsmin.jsmin(script)
        relative = source_file.relative_to(self.layout.scripts_src)
        logical = self.layout.logical_path(self.layout.scripts_dest / relative)
        output = await self._publish(logical, script.encode("utf-8"))
        self.context.dependencies.record(source_file, looked_up)
        return output

    async def compile_style(self, source_file: Path) -> Path:
        resolver, looked_up = self._tracking_resolver()
        css = await asyncio.to_thread(
            compile_style,
            source_file,
            style_functions(resolver.asset_path),
            [self.layout.styles_src],
            self.context.production,
        )
        relative = style_output_name(source_file.relative_to(self.layout.styles_src))
        logical = self.layout.logical_path(self.layout.styles_dest / relative)
        output = await self._publish(logical, css.encode("utf-8"))
        self.context.dependencies.record(source_file, looked_up)
        return output

    async def publish_image(self, source_file: Path) -> Path:
        """Fingerprinted copy in production, a symlink otherwise."""
        relative = source_file.relative_to(self.layout.images_src)
        destination = self.layout.images_dest / relative
        if not self.context.production:
            await files.symlink(source_file, destination)
            log_compiled(self.layout.logical_path(destination))
            return destination
        content = await files.read_bytes(source_file)
        return await self._publish(self.layout.logical_path(destination), content)

    async def _run(self, sources: Iterable[Path], compile_one) -> StageResult:
        result = StageResult()
        for source_file in sources:
            try:
                output = await compile_one(source_file)
            except SourceSyntaxError as e:
                logger.error(str(e))
                result.failures.append(e)
                continue
            result.outputs.append(self.layout.logical_path(output))
            result.output_files.append(output)
        return result

    async def compile_scripts(self, sources: Optional[Iterable[Path]] = None) -> StageResult:
        if sources is None:
            sources = self.find_scripts()
        return await self._run(sources, self.compile_script)

    async def compile_styles(self, sources: Optional[Iterable[Path]] = None) -> StageResult:
        """Compile every non-partial stylesheet; partials only reach output through imports."""
        if sources is None:
            sources = self.find_styles()
        sources = [s for s in sources if not is_style_partial(s)]
        return await self._run(sources, self.compile_style)

    async def publish_images(self, sources: Optional[Iterable[Path]] = None) -> StageResult:
        if sources is None:
            sources = self.find_images()
        return await self._run(sources, self.publish_image)

    async def publish_vendor(self) -> StageResult:
        """Vendor files pass through untouched: copied in production, linked otherwise."""
        result = StageResult()
        source = self.layout.vendor_src
        if not source.is_dir():
            return result
        if self.context.production:
            await files.copy(source, self.layout.vendor_dest)
        else:
            await files.symlink(source, self.layout.vendor_dest)
        log_compiled(self.layout.logical_path(self.layout.vendor_dest))
        result.outputs.append(self.layout.logical_path(self.layout.vendor_dest))
        return result

    async def compile_assets(self) -> StageResult:
        """Scripts and styles, interleaved on the event loop."""
        scripts, styles = await asyncio.gather(self.compile_scripts(), self.compile_styles())
        return scripts.merge(styles)
