"""Build system: clean and full builds."""
import logging
from dataclasses import dataclass, field
from typing import List

from pagesmith.compiler.exceptions import PagesmithError
from pagesmith.compiler.templates import TemplateCompiler, compile_pages, find_roots
from pagesmith.runtime import files
from pagesmith.runtime.assets import AssetPipeline
from pagesmith.runtime.context import BuildContext, StageResult

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    """What a build produced and what failed along the way."""

    outputs: List[str] = field(default_factory=list)
    failures: List[PagesmithError] = field(default_factory=list)

    def add(self, result: StageResult) -> None:
        self.outputs.extend(result.outputs)
        self.failures.extend(result.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


async def clean(context: BuildContext) -> None:
    """Recreate an empty output tree and start a new build generation."""
    await files.reset_directory(context.layout.dest_dir)
    context.reset_generation()


async def build_project(context: BuildContext) -> BuildReport:
    """Full build.

    Stages run in order: clean, route table, images and vendor, then
    scripts and styles side by side, then pages. Pages come last so every
    asset reference they make resolves to a published file.
    """
    report = BuildReport()
    await clean(context)
    context.rebuild_routes()
    logger.debug(f"Route table: {len(context.routes)} helpers")

    pipeline = AssetPipeline(context)
    report.add(await pipeline.publish_images())
    report.add(await pipeline.publish_vendor())
    report.add(await pipeline.compile_assets())

    report.add(await compile_pages(context, find_roots(context), TemplateCompiler(context)))

    if report.failures:
        logger.error(f"Build finished with {len(report.failures)} error(s)")
    return report
