"""Configuration loader for Pagesmith."""
import importlib.util
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from pagesmith.compiler.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "pagesmith.config.py"
ENVIRONMENT_VARIABLE = "PAGESMITH_ENV"

DEVELOPMENT = "development"
PRODUCTION = "production"
SANDBOX = "sandbox"
ENVIRONMENTS = (DEVELOPMENT, PRODUCTION, SANDBOX)


def load_config(path: Path | str | None = None) -> Dict[str, Any]:
    """
    Load configuration from a python file.

    If path is provided, loads from there.
    Otherwise, looks for pagesmith.config.py in the current working directory.

    Returns a dictionary of options mapped from the uppercase variables
    found in the config module.
    """
    if path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILENAME
    else:
        path = Path(path)

    if not path.exists():
        return {}

    try:
        spec = importlib.util.spec_from_file_location("pagesmith_config", path)
        if spec is None or spec.loader is None:
            return {}

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    except Exception as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return {}

    config = {key: getattr(module, key) for key in dir(module) if key.isupper()}

    # SRC_DIR -> src_dir, DEST_DIR -> dest_dir, ENVIRONMENT -> environment, ...
    mapped_config = {}
    for key in ("SRC_DIR", "DEST_DIR", "ENVIRONMENT", "VERBOSE", "HOST", "PORT"):
        if key in config:
            mapped_config[key.lower()] = config[key]

    return mapped_config


def parse_environment(value: str) -> str:
    """Validate a build mode name."""
    mode = value.strip().lower()
    if mode not in ENVIRONMENTS:
        raise ConfigurationError(
            f"Unknown build mode '{value}', expected one of: {', '.join(ENVIRONMENTS)}"
        )
    return mode


def resolve_environment(
    override: Optional[str] = None, configured: Optional[str] = None
) -> str:
    """Pick the build mode.

    An explicit override wins, then the PAGESMITH_ENV variable, then the
    config file. Unknown values fall back to development with a warning.
    """
    for candidate in (override, os.environ.get(ENVIRONMENT_VARIABLE), configured):
        if not candidate:
            continue
        try:
            return parse_environment(candidate)
        except ConfigurationError as e:
            logger.warning(f"{e}; falling back to '{DEVELOPMENT}'")
            return DEVELOPMENT
    return DEVELOPMENT


@dataclass
class SiteLayout:
    """Source and output directories of a site."""

    src_dir: Path
    dest_dir: Path

    @classmethod
    def from_roots(cls, src_dir: Path | str = "src", dest_dir: Path | str = "public") -> "SiteLayout":
        return cls(src_dir=Path(src_dir).resolve(), dest_dir=Path(dest_dir).resolve())

    @property
    def views_src(self) -> Path:
        return self.src_dir / "views"

    @property
    def assets_src(self) -> Path:
        return self.src_dir / "assets"

    @property
    def assets_dest(self) -> Path:
        return self.dest_dir / "assets"

    @property
    def scripts_src(self) -> Path:
        return self.assets_src / "js"

    @property
    def scripts_dest(self) -> Path:
        return self.assets_dest / "js"

    @property
    def styles_src(self) -> Path:
        return self.assets_src / "css"

    @property
    def styles_dest(self) -> Path:
        return self.assets_dest / "css"

    @property
    def images_src(self) -> Path:
        return self.assets_src / "img"

    @property
    def images_dest(self) -> Path:
        return self.assets_dest / "img"

    @property
    def vendor_src(self) -> Path:
        return self.src_dir / "vendor"

    @property
    def vendor_dest(self) -> Path:
        return self.dest_dir / "vendor"

    def logical_path(self, output_file: Path) -> str:
        """Public URL path of a file inside the output tree."""
        return "/" + output_file.relative_to(self.dest_dir).as_posix()

    def output_file(self, logical_path: str) -> Path:
        """Inverse of logical_path."""
        return self.dest_dir / logical_path.lstrip("/")
