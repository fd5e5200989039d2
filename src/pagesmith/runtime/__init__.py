"""Runtime components."""

from pagesmith.runtime.context import BuildContext, StageResult
from pagesmith.runtime.dependencies import DependencyCache
from pagesmith.runtime.fingerprint import FingerprintStore, ReferenceResolver

__all__ = ["BuildContext", "StageResult", "DependencyCache", "FingerprintStore", "ReferenceResolver"]
