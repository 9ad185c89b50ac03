"""Hostname-resolved extractor plugins."""

from __future__ import annotations

from typing import List, Optional

import structlog

from sitebrand.extractor.plugins.base import ExtraAssets, ExtractorPlugin
from sitebrand.extractor.plugins.default import DefaultExtractorPlugin
from sitebrand.extractor.plugins.nordicbuild import NordicBuildPlugin

logger = structlog.get_logger(__name__)

__all__ = [
    "DefaultExtractorPlugin",
    "ExtraAssets",
    "ExtractorPlugin",
    "ExtractorRegistry",
    "NordicBuildPlugin",
]


class ExtractorRegistry:
    """Ordered plugin list with a default fallback.

    :meth:`resolve` returns the first plugin whose ``match`` accepts the
    hostname.  A plugin whose ``match`` raises is skipped.
    """

    def __init__(
        self,
        plugins: Optional[List[ExtractorPlugin]] = None,
        default_plugin: Optional[ExtractorPlugin] = None,
    ) -> None:
        self.default_plugin = default_plugin or DefaultExtractorPlugin()
        self.plugins = [NordicBuildPlugin()] if plugins is None else list(plugins)

    def resolve(self, hostname: str) -> ExtractorPlugin:
        for plugin in self.plugins:
            try:
                if plugin.match(hostname):
                    return plugin
            except Exception as exc:
                logger.warning("plugin_match_failed", plugin=plugin.name, hostname=hostname, error=str(exc))
        return self.default_plugin
