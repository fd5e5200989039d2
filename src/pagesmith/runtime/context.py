"""Build context shared by every pipeline stage."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from pagesmith.compiler.exceptions import PagesmithError
from pagesmith.compiler.routes import build_route_table
from pagesmith.config import DEVELOPMENT, ENVIRONMENTS, PRODUCTION, SiteLayout
from pagesmith.runtime.dependencies import DependencyCache
from pagesmith.runtime.fingerprint import FingerprintStore, ReferenceResolver


@dataclass
class StageResult:
    """Outcome of one pipeline stage over a batch of files."""

    outputs: List[str] = field(default_factory=list)  # logical paths written
    output_files: List[Path] = field(default_factory=list)  # dependency keys of those outputs
    failures: List[PagesmithError] = field(default_factory=list)

    def merge(self, other: "StageResult") -> "StageResult":
        self.outputs.extend(other.outputs)
        self.output_files.extend(other.output_files)
        self.failures.extend(other.failures)
        return self

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class BuildContext:
    """Mutable state of one build run.

    Owned by the orchestrator and handed to each stage; independent
    contexts never share caches.
    """

    layout: SiteLayout
    environment: str = DEVELOPMENT
    verbose: bool = True
    routes: Dict[str, str] = field(default_factory=dict)
    dependencies: DependencyCache = field(default_factory=DependencyCache)
    fingerprints: Optional[FingerprintStore] = None

    def __post_init__(self) -> None:
        if self.fingerprints is None:
            self.fingerprints = FingerprintStore(self.environment)
        self.resolver = ReferenceResolver(self.fingerprints)

    @classmethod
    def create(
        cls,
        src_dir: Path | str = "src",
        dest_dir: Path | str = "public",
        environment: str = DEVELOPMENT,
        verbose: bool = True,
    ) -> "BuildContext":
        return cls(
            layout=SiteLayout.from_roots(src_dir, dest_dir),
            environment=environment,
            verbose=verbose,
        )

    @property
    def production(self) -> bool:
        return self.environment == PRODUCTION

    def environment_flags(self) -> Dict[str, bool]:
        return {name: name == self.environment for name in ENVIRONMENTS}

    def rebuild_routes(self) -> bool:
        """Rescan the views tree. Returns True when the table changed."""
        table = build_route_table(self.layout.views_src)
        changed = table != self.routes
        self.routes = table
        return changed

    def reset_generation(self) -> None:
        """Forget fingerprints, routes and dependency edges on clean."""
        self.fingerprints.clear()
        self.dependencies.clear()
        self.routes = {}
