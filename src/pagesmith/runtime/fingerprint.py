"""Content fingerprints and logical -> physical asset resolution."""

import hashlib
import posixpath
from typing import Callable, Dict, Optional

from pagesmith.config import PRODUCTION

HASH_LENGTH = 10

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico")
ASSET_ROOTS = {
    "image": "/assets/img",
    "script": "/assets/js",
    "stylesheet": "/assets/css",
}


def content_hash(content: bytes, length: int = HASH_LENGTH) -> str:
    """Short, stable hash of content."""
    return hashlib.md5(content).hexdigest()[:length]


def fingerprinted_name(logical_path: str, digest: str) -> str:
    """'/assets/img/logo.svg' -> '/assets/img/logo-<digest>.svg'."""
    directory, name = posixpath.split(logical_path)
    stem, extension = posixpath.splitext(name)
    if not stem:
        # dotfiles like '.htaccess' have no extension to splice before
        stem, extension = name, ""
    return posixpath.join(directory, f"{stem}-{digest}{extension}")


def asset_category(name: str) -> Optional[str]:
    """Category of an asset name judged by its extension."""
    lowered = name.lower()
    if lowered.endswith(IMAGE_EXTENSIONS):
        return "image"
    if lowered.endswith(".css"):
        return "stylesheet"
    if lowered.endswith(".js"):
        return "script"
    return None


def logical_asset_path(name: str, category: Optional[str] = None) -> str:
    """Map an asset name onto its logical path inside the output tree.

    Absolute names are returned unchanged, as are names whose category
    can't be told from the extension.
    """
    if name.startswith("/"):
        return name
    category = category or asset_category(name)
    if category is None:
        return name
    return posixpath.join(ASSET_ROOTS[category], name)


class FingerprintStore:
    """Logical -> physical path records for one build generation."""

    def __init__(self, environment: str) -> None:
        self.environment = environment
        self._records: Dict[str, str] = {}

    @property
    def enabled(self) -> bool:
        return self.environment == PRODUCTION

    def on_compiled(self, logical_path: str, content: bytes) -> str:
        """Register compiled content and return the path it should be written to."""
        if not self.enabled:
            return logical_path
        physical_path = fingerprinted_name(logical_path, content_hash(content))
        self._records[logical_path] = physical_path
        return physical_path

    def get(self, logical_path: str) -> Optional[str]:
        return self._records.get(logical_path)

    def clear(self) -> None:
        self._records.clear()

    def mapping(self) -> Dict[str, str]:
        return dict(self._records)

    def __len__(self) -> int:
        return len(self._records)


class ReferenceResolver:
    """Resolves logical paths against a fingerprint store.

    The same instance backs template rendering, style callbacks and script
    constant injection so every context sees one answer per generation.
    """

    def __init__(
        self,
        store: FingerprintStore,
        on_lookup: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.store = store
        self.on_lookup = on_lookup

    def resolve(self, logical_path: str) -> str:
        if self.on_lookup is not None:
            self.on_lookup(logical_path)
        return self.store.get(logical_path) or logical_path

    __call__ = resolve

    def asset_path(self, name: str, category: Optional[str] = None) -> str:
        """Resolve an asset name such as 'logo.svg' to its published path."""
        return self.resolve(logical_asset_path(name, category))

    def bind(self, on_lookup: Callable[[str], None]) -> "ReferenceResolver":
        """Resolver sharing this store that reports every lookup."""
        return ReferenceResolver(self.store, on_lookup=on_lookup)
