"""
Site registry backed by a YAML file.

Maps site identifiers to validated SiteConfig instances. Every definition
is validated when the file is loaded, so a broken selector chain or an
unknown rules name fails before any monitor runs. reload() swaps the whole
mapping at once, so readers never see a half-loaded registry.

Example:
    >>> registry = SiteRegistry.from_yaml("config/sites.yaml")
    >>> config = registry.require("OLX")
    >>> config.timeouts
    [5000, 10000, 15000]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from adradar.sites.models import SiteConfig
from adradar.utils.exceptions import (
    ConfigFileNotFoundError,
    ConfigurationError,
    UnknownSiteError,
)
from adradar.utils.logger import get_logger

logger = get_logger(__name__)


class SiteRegistry:
    """
    Static, versioned mapping from site identifier to SiteConfig.

    Attributes:
        path: YAML file the registry was loaded from, if any.
        version: Version string declared in the file (or "inline").
    """

    def __init__(self, configs: Optional[List[SiteConfig]] = None):
        self._configs: Dict[str, SiteConfig] = {}
        self.path: Optional[Path] = None
        self.version: str = "inline"
        for config in configs or []:
            self.register(config)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "SiteRegistry":
        registry = cls()
        registry.load(path)
        return registry

    def register(self, config: SiteConfig) -> None:
        self._configs[config.site] = config

    def get(self, site: str) -> Optional[SiteConfig]:
        return self._configs.get(site)

    def require(self, site: str) -> SiteConfig:
        """
        Get a site config or fail.

        Raises:
            UnknownSiteError: If the site is not registered.
        """
        config = self._configs.get(site)
        if config is None:
            raise UnknownSiteError(f"No configuration for site '{site}'", site=site)
        return config

    def sites(self) -> List[str]:
        return sorted(self._configs)

    def __contains__(self, site: str) -> bool:
        return site in self._configs

    def __len__(self) -> int:
        return len(self._configs)

    def load(self, path: Path | str) -> None:
        """
        Load (or replace) all site definitions from a YAML file.

        Raises:
            ConfigFileNotFoundError: If the file doesn't exist.
            ConfigurationError: If any site definition is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigFileNotFoundError(f"Sites file not found: {path}", path=str(path))

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        configs = self._parse(data, source=str(path))
        self._configs = {config.site: config for config in configs}
        self.path = path
        self.version = str(data.get("version", "unversioned"))
        logger.info(f"Loaded {len(configs)} site configs from {path} (version={self.version})")

    def reload(self) -> None:
        """Re-read the file the registry was loaded from."""
        if self.path is None:
            raise ConfigurationError("Registry was not loaded from a file; nothing to reload")
        self.load(self.path)

    @staticmethod
    def _parse(data: Dict[str, Any], source: str) -> List[SiteConfig]:
        entries = data.get("sites")
        if not isinstance(entries, list) or not entries:
            raise ConfigurationError(f"'sites' must be a non-empty list in {source}", context={"path": source})

        configs: List[SiteConfig] = []
        seen = set()
        for index, entry in enumerate(entries):
            try:
                config = SiteConfig.model_validate(entry)
            except ValidationError as e:
                site = entry.get("site") if isinstance(entry, dict) else None
                raise ConfigurationError(
                    f"Invalid site definition #{index} ({site or 'unnamed'}): {e}",
                    context={"path": source, "site": site},
                ) from e
            if config.site in seen:
                raise ConfigurationError(
                    f"Duplicate site '{config.site}' in {source}",
                    context={"path": source, "site": config.site},
                )
            seen.add(config.site)
            configs.append(config)
        return configs
