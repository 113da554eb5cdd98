"""Plugin contract and adapters."""

from .base import LegacyPlugin, PluginVariant, QualityPlugin, QualityPluginBase
from .legacy import LegacyPluginAdapter

__all__ = [
    "LegacyPlugin",
    "LegacyPluginAdapter",
    "PluginVariant",
    "QualityPlugin",
    "QualityPluginBase",
]
