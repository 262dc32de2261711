"""Zone identifiers.

A zone names an application and one of its issuing templates, written as
``Application Name\\Template Alias``. An empty alias selects the template
the service applies by default.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

ZONE_SEPARATOR = "\\"


class Zone(BaseModel):
    """Parsed zone identifier."""

    model_config = ConfigDict(frozen=True)

    application_name: str
    template_alias: str = ""

    @classmethod
    def parse(cls, zone: str) -> Zone:
        """Parse a zone string.

        Args:
            zone: ``Application`` or ``Application\\Alias``.

        Returns:
            Parsed zone.

        Raises:
            ValueError: If the zone is empty or has more than one separator.
        """
        if not zone or not zone.strip():
            raise ValueError("zone not specified")
        segments = zone.split(ZONE_SEPARATOR)
        if len(segments) > 2:
            raise ValueError(f"invalid zone format: {zone!r}")
        application_name = segments[0].strip()
        if not application_name:
            raise ValueError(f"invalid zone format: {zone!r}")
        alias = segments[1].strip() if len(segments) == 2 else ""
        return cls(application_name=application_name, template_alias=alias)

    def __str__(self) -> str:
        if self.template_alias:
            return f"{self.application_name}{ZONE_SEPARATOR}{self.template_alias}"
        return self.application_name
