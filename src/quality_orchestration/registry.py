"""Plugin registry: identifier validation, variant tagging and applicability filtering.

The registry is an ordinary object owned by one engine; nothing here is module
state, so independent engines never see each other's plugins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import structlog

from .errors import InvalidPluginError
from .models import ProjectContext
from .plugins.base import LegacyPlugin, PluginVariant, QualityPlugin
from .plugins.legacy import LegacyPluginAdapter

logger = structlog.get_logger(__name__)

PLUGIN_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


@dataclass
class RegisteredPlugin:
    """A plugin as the coordinator sees it: always quality-shaped."""

    plugin_id: str
    plugin_name: str
    variant: PluginVariant
    plugin: Any
    source: Any


@dataclass
class PluginSelection:
    plugins: List[RegisteredPlugin] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def is_valid_plugin_id(plugin_id: Any) -> bool:
    return isinstance(plugin_id, str) and bool(PLUGIN_ID_PATTERN.match(plugin_id))


def detect_variant(plugin: Any) -> Optional[PluginVariant]:
    """Work out which contract ``plugin`` implements, or None for neither."""
    if isinstance(plugin, QualityPlugin):
        return PluginVariant.QUALITY
    if isinstance(plugin, LegacyPlugin):
        return PluginVariant.LEGACY
    if callable(getattr(plugin, "detect_patterns", None)):
        return PluginVariant.QUALITY
    if callable(getattr(plugin, "analyze", None)):
        return PluginVariant.LEGACY
    return None


def has_contract(plugin: Any, variant: PluginVariant) -> bool:
    if variant is PluginVariant.LEGACY:
        return callable(getattr(plugin, "analyze", None))
    return all(
        callable(getattr(plugin, attr, None))
        for attr in ("detect_patterns", "evaluate_quality")
    )


def plugin_identifier(plugin: Any) -> Optional[str]:
    """Return the declared identifier: ``plugin_id``, ``id``, then a name."""
    for attr in ("plugin_id", "id", "plugin_name", "name"):
        value = getattr(plugin, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


class PluginRegistry:
    """Holds registered plugins in registration order."""

    def __init__(self) -> None:
        self._plugins: Dict[str, RegisteredPlugin] = {}
        self.logger = logger.bind(component="registry")

    def register(
        self,
        plugin: Any,
        variant: Optional[PluginVariant] = None,
        plugin_id: Optional[str] = None,
    ) -> bool:
        """Register ``plugin``; invalid or conflicting registrations are logged
        and rejected, never raised."""
        resolved_variant = variant or detect_variant(plugin)
        if resolved_variant is None or not has_contract(plugin, resolved_variant):
            self.logger.warning("Rejected plugin without a known contract", plugin=repr(plugin))
            return False

        resolved_id = plugin_id or plugin_identifier(plugin)
        if not is_valid_plugin_id(resolved_id):
            self.logger.warning("Rejected plugin with invalid identifier", plugin_id=resolved_id)
            return False
        if resolved_id in self._plugins:
            self.logger.warning("Rejected duplicate plugin identifier", plugin_id=resolved_id)
            return False

        if resolved_variant is PluginVariant.LEGACY:
            shaped: Any = LegacyPluginAdapter(plugin, resolved_id)
            name = resolved_id
        else:
            shaped = plugin
            name = getattr(plugin, "plugin_name", None) or getattr(plugin, "name", None) or resolved_id

        self._plugins[resolved_id] = RegisteredPlugin(
            plugin_id=resolved_id,
            plugin_name=str(name),
            variant=resolved_variant,
            plugin=shaped,
            source=plugin,
        )
        self.logger.info(
            "Plugin registered", plugin_id=resolved_id, variant=resolved_variant.value
        )
        return True

    def unregister(self, plugin_id: str) -> bool:
        removed = self._plugins.pop(plugin_id, None)
        if removed is None:
            self.logger.warning("Plugin not found", plugin_id=plugin_id)
            return False
        self.logger.info("Plugin unregistered", plugin_id=plugin_id)
        return True

    def get(self, plugin_id: str) -> Optional[RegisteredPlugin]:
        return self._plugins.get(plugin_id)

    def require(self, plugin_id: str) -> RegisteredPlugin:
        entry = self._plugins.get(plugin_id)
        if entry is None:
            raise InvalidPluginError(
                f"Plugin not registered: {plugin_id}", details={"plugin_id": plugin_id}
            )
        return entry

    def list(self, variant: Optional[PluginVariant] = None) -> List[RegisteredPlugin]:
        return [
            entry
            for entry in self._plugins.values()
            if variant is None or entry.variant is variant
        ]

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._plugins

    def applicable_plugins(
        self,
        context: ProjectContext,
        skip_plugins: Iterable[str] = (),
    ) -> PluginSelection:
        """Filter plugins by skip list and their own applicability predicate.

        A predicate that raises excludes its plugin and adds a warning; the
        selection itself never fails.
        """
        skipped = set(skip_plugins)
        selection = PluginSelection()
        for entry in self._plugins.values():
            if entry.plugin_id in skipped or entry.plugin_name in skipped:
                continue
            try:
                predicate = getattr(entry.plugin, "is_applicable", None)
                applicable = predicate is None or bool(predicate(context))
            except Exception as exc:  # noqa: BLE001
                message = f"Applicability check failed for {entry.plugin_id}: {exc}"
                self.logger.warning(
                    "Plugin applicability check failed",
                    plugin=entry.plugin_id,
                    error=str(exc),
                )
                selection.warnings.append(message)
                continue
            if applicable:
                selection.plugins.append(entry)
        return selection


__all__ = [
    "PLUGIN_ID_PATTERN",
    "PluginRegistry",
    "PluginSelection",
    "RegisteredPlugin",
    "detect_variant",
    "has_contract",
    "is_valid_plugin_id",
    "plugin_identifier",
]
