"""Tests for the plugin registry."""

import pytest

from quality_orchestration.errors import InvalidPluginError
from quality_orchestration.models import ProjectContext
from quality_orchestration.plugins import LegacyPluginAdapter, PluginVariant
from quality_orchestration.registry import PluginRegistry, detect_variant, is_valid_plugin_id

from tests.unit.helpers.factories import DuckLegacyPlugin, FakeLegacyPlugin, FakeQualityPlugin


class TestPluginIdentifiers:
    def test_valid_identifiers(self):
        assert is_valid_plugin_id("assertion-check")
        assert is_valid_plugin_id("Plugin_2")

    def test_invalid_identifiers(self):
        assert not is_valid_plugin_id("")
        assert not is_valid_plugin_id("has space")
        assert not is_valid_plugin_id("../escape")
        assert not is_valid_plugin_id(None)

    def test_detect_variant(self):
        assert detect_variant(FakeQualityPlugin("q")) is PluginVariant.QUALITY
        assert detect_variant(FakeLegacyPlugin("l")) is PluginVariant.LEGACY
        assert detect_variant(DuckLegacyPlugin("d")) is PluginVariant.LEGACY
        assert detect_variant(object()) is None


class TestPluginRegistry:
    def test_register_quality_plugin(self):
        """Test registering a quality plugin keeps it unwrapped."""
        registry = PluginRegistry()
        plugin = FakeQualityPlugin("quality-one")

        assert registry.register(plugin) is True
        entry = registry.get("quality-one")
        assert entry.variant is PluginVariant.QUALITY
        assert entry.plugin is plugin
        assert len(registry) == 1

    def test_legacy_plugin_adapted_at_registration(self):
        """Test legacy plugins are wrapped once, at the registry boundary."""
        registry = PluginRegistry()
        legacy = FakeLegacyPlugin("legacy-one")

        assert registry.register(legacy) is True
        entry = registry.get("legacy-one")
        assert entry.variant is PluginVariant.LEGACY
        assert isinstance(entry.plugin, LegacyPluginAdapter)
        assert entry.plugin.wrapped is legacy
        assert entry.source is legacy

    def test_invalid_identifier_rejected(self):
        """Test invalid identifiers are rejected without raising."""
        registry = PluginRegistry()

        assert registry.register(FakeQualityPlugin("bad id!")) is False
        assert len(registry) == 0

    def test_duplicate_identifier_rejected(self):
        registry = PluginRegistry()
        first = FakeQualityPlugin("dup")

        assert registry.register(first) is True
        assert registry.register(FakeQualityPlugin("dup")) is False
        assert registry.get("dup").plugin is first

    def test_shape_mismatch_rejected(self):
        """Test an explicit variant must match the plugin's methods."""
        registry = PluginRegistry()

        assert registry.register(FakeQualityPlugin("q"), variant=PluginVariant.LEGACY) is False
        assert registry.register(object(), plugin_id="nothing") is False

    def test_registration_order_preserved(self):
        registry = PluginRegistry()
        for plugin_id in ("c", "a", "b"):
            registry.register(FakeQualityPlugin(plugin_id))

        assert [entry.plugin_id for entry in registry.list()] == ["c", "a", "b"]

    def test_list_by_variant(self):
        registry = PluginRegistry()
        registry.register(FakeQualityPlugin("quality"))
        registry.register(FakeLegacyPlugin("legacy"))

        assert [e.plugin_id for e in registry.list(PluginVariant.QUALITY)] == ["quality"]
        assert [e.plugin_id for e in registry.list(PluginVariant.LEGACY)] == ["legacy"]

    def test_unregister(self):
        registry = PluginRegistry()
        registry.register(FakeQualityPlugin("gone"))

        assert registry.unregister("gone") is True
        assert "gone" not in registry
        assert registry.unregister("gone") is False

    def test_require(self):
        registry = PluginRegistry()
        registry.register(FakeQualityPlugin("present"))

        assert registry.require("present").plugin_id == "present"
        with pytest.raises(InvalidPluginError) as excinfo:
            registry.require("absent")
        assert excinfo.value.error_code == "INVALID_PLUGIN"
        assert excinfo.value.details == {"plugin_id": "absent"}

    def test_registries_are_independent(self):
        first = PluginRegistry()
        second = PluginRegistry()
        first.register(FakeQualityPlugin("only-first"))

        assert "only-first" in first
        assert "only-first" not in second


class TestApplicablePlugins:
    def test_skip_list_by_id(self):
        registry = PluginRegistry()
        registry.register(FakeQualityPlugin("keep"))
        registry.register(FakeQualityPlugin("skip"))

        selection = registry.applicable_plugins(ProjectContext(), skip_plugins=["skip"])

        assert [entry.plugin_id for entry in selection.plugins] == ["keep"]
        assert selection.warnings == []

    def test_not_applicable_excluded(self):
        registry = PluginRegistry()
        registry.register(FakeQualityPlugin("no", applicable=False))

        assert registry.applicable_plugins(ProjectContext()).plugins == []

    def test_applicability_error_excludes_plugin_with_warning(self):
        """Test a raising predicate excludes only that plugin and records a warning."""
        registry = PluginRegistry()
        registry.register(FakeQualityPlugin("broken", applicability_error=RuntimeError("boom")))
        registry.register(FakeQualityPlugin("fine"))

        selection = registry.applicable_plugins(ProjectContext())

        assert [entry.plugin_id for entry in selection.plugins] == ["fine"]
        assert len(selection.warnings) == 1
        assert "broken" in selection.warnings[0]
        assert "boom" in selection.warnings[0]
