"""Unit tests for zone parsing."""

from __future__ import annotations

import pytest

from cert_lifecycle_manager.core.zone import Zone


@pytest.mark.unit
class TestZoneParse:
    """Tests for Zone.parse."""

    def test_application_and_alias(self) -> None:
        """Both segments are captured."""
        zone = Zone.parse("My App\\Default")

        assert zone.application_name == "My App"
        assert zone.template_alias == "Default"

    def test_application_only(self) -> None:
        """A bare application has an empty alias."""
        zone = Zone.parse("My App")

        assert zone.application_name == "My App"
        assert zone.template_alias == ""

    def test_whitespace_trimmed(self) -> None:
        """Segments are stripped."""
        assert Zone.parse(" App \\ Alias ") == Zone(application_name="App", template_alias="Alias")

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_rejected(self, value: str) -> None:
        """Empty zones are rejected."""
        with pytest.raises(ValueError, match="not specified"):
            Zone.parse(value)

    @pytest.mark.parametrize("value", ["a\\b\\c", "\\Alias"])
    def test_invalid_format_rejected(self, value: str) -> None:
        """Too many segments or an empty application are rejected."""
        with pytest.raises(ValueError, match="invalid zone format"):
            Zone.parse(value)

    @pytest.mark.parametrize("value", ["App\\Alias", "App"])
    def test_str_renders_zone(self, value: str) -> None:
        """str() gives back the zone string."""
        assert str(Zone.parse(value)) == value
