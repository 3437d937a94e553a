"""
Widget template catalog: the remote list when available, otherwise the
configured or built-in templates.
"""

import logging
from typing import Any, Dict, List, Optional

from designer.models import CUSTOM_WIDGET_TEMPLATE_OFFSET, WidgetTemplate

logger = logging.getLogger(__name__)


BUILTIN_TEMPLATES: List[Dict[str, Any]] = [
    {
        "name": "clock", "label": "Live Clock", "category": "time",
        "description": "Displays current time with configurable timezone",
        "defaultConfig": {
            "timezone": "local", "format": "24h", "showSeconds": False,
            "fontFamily": "monospace", "fontSize": 48,
        },
        "minWidth": 200, "minHeight": 80,
    },
    {
        "name": "date", "label": "Date Display", "category": "time",
        "description": "Shows current date",
        "defaultConfig": {
            "timezone": "local", "fontSize": 24, "fontFamily": "sans-serif",
            "color": "#000000", "textAlign": "center",
        },
        "minWidth": 250, "minHeight": 50,
    },
    {
        "name": "weather", "label": "Weather", "category": "weather",
        "description": "Shows current weather for a location",
        "defaultConfig": {
            "location": "New York, US", "latitude": 40.7128, "longitude": -74.006,
            "units": "metric", "showIcon": True, "showTemperature": True,
            "showCondition": True, "showHumidity": False, "fontSize": 32,
        },
        "minWidth": 200, "minHeight": 150,
    },
    {
        "name": "text", "label": "Text Block", "category": "content",
        "description": "Static text content",
        "defaultConfig": {
            "text": "Hello World", "fontFamily": "sans-serif", "fontSize": 24,
            "fontWeight": "normal", "textAlign": "left", "color": "#000000",
        },
        "minWidth": 100, "minHeight": 40,
    },
    {
        "name": "qrcode", "label": "QR Code", "category": "content",
        "description": "Generates a QR code from text/URL",
        "defaultConfig": {
            "content": "https://example.com", "size": 150, "errorCorrection": "M",
            "darkColor": "#000000", "lightColor": "#FFFFFF",
        },
        "minWidth": 100, "minHeight": 100,
    },
    {
        "name": "battery", "label": "Battery Status", "category": "system",
        "description": "Shows device battery level",
        "defaultConfig": {
            "showPercentage": True, "showIcon": True, "fontSize": 18, "color": "#000000",
        },
        "minWidth": 80, "minHeight": 40,
    },
    {
        "name": "countdown", "label": "Countdown Timer", "category": "time",
        "description": "Counts down to a specific date/time",
        "defaultConfig": {
            "targetDate": "2026-01-01T00:00:00Z", "label": "New Year",
            "showDays": True, "showHours": True, "showMinutes": True,
            "showSeconds": False, "fontSize": 32, "fontFamily": "monospace",
            "color": "#000000",
        },
        "minWidth": 250, "minHeight": 80,
    },
    {
        "name": "image", "label": "Static Image", "category": "content",
        "description": "Displays a static image from URL",
        "defaultConfig": {"url": "", "fit": "contain", "backgroundColor": "#FFFFFF"},
        "minWidth": 50, "minHeight": 50,
    },
    {
        "name": "divider", "label": "Divider Line", "category": "layout",
        "description": "A horizontal or vertical divider line",
        "defaultConfig": {
            "orientation": "horizontal", "color": "#000000", "thickness": 2, "style": "solid",
        },
        "minWidth": 20, "minHeight": 2,
    },
    {
        "name": "rectangle", "label": "Rectangle", "category": "layout",
        "description": "A simple rectangle shape",
        "defaultConfig": {
            "fillColor": "#000000", "borderColor": "#000000", "borderWidth": 0, "borderRadius": 0,
        },
        "minWidth": 20, "minHeight": 20,
    },
    {
        "name": "wifi", "label": "WiFi Status", "category": "system",
        "description": "Shows WiFi signal strength",
        "defaultConfig": {"showStrength": True, "showIcon": True, "fontSize": 18, "color": "#000000"},
        "minWidth": 80, "minHeight": 40,
    },
    {
        "name": "deviceinfo", "label": "Device Info", "category": "system",
        "description": "Shows device name and status",
        "defaultConfig": {
            "showName": True, "showFirmware": True, "showMac": False,
            "fontSize": 16, "fontFamily": "sans-serif", "color": "#000000",
        },
        "minWidth": 150, "minHeight": 60,
    },
    {
        "name": "daysuntil", "label": "Days Until", "category": "time",
        "description": "Shows days remaining until an event",
        "defaultConfig": {
            "targetDate": "2026-12-25", "labelPrefix": "Days till Christmas: ",
            "labelSuffix": "", "fontSize": 32, "fontFamily": "sans-serif", "color": "#000000",
        },
        "minWidth": 200, "minHeight": 60,
    },
    {
        "name": "github", "label": "GitHub Stars", "category": "content",
        "description": "Displays star count for a GitHub repository",
        "defaultConfig": {
            "owner": "facebook", "repo": "react", "showIcon": True,
            "showRepoName": False, "fontSize": 32, "fontFamily": "sans-serif",
        },
        "minWidth": 100, "minHeight": 50,
    },
    {
        "name": "custom-widget-base", "label": "Custom Widget", "category": "custom",
        "description": "Base template for user-created custom widgets",
        "defaultConfig": {"customWidgetId": None, "displayType": "value", "fontSize": 24},
        "minWidth": 100, "minHeight": 50,
    },
]


def builtin_templates() -> List[WidgetTemplate]:
    """The fallback catalog, ids assigned from 1 in list order."""
    return [
        WidgetTemplate.model_validate({"id": i, **entry})
        for i, entry in enumerate(BUILTIN_TEMPLATES, start=1)
    ]


def custom_template(
    widget_id: int,
    label: str,
    display_type: str = "value",
    template: Optional[str] = None,
    description: str = "",
    min_width: int = 100,
    min_height: int = 50,
) -> WidgetTemplate:
    """Template entry for a user-defined custom widget."""
    return WidgetTemplate(
        id=CUSTOM_WIDGET_TEMPLATE_OFFSET + widget_id,
        name=f"custom-{widget_id}",
        label=label,
        description=description,
        category="custom",
        default_config={
            "customWidgetId": widget_id,
            "displayType": display_type,
            "template": template,
            "fontSize": 24,
            "fontFamily": "sans-serif",
            "fontWeight": "normal",
            "textAlign": "center",
            "verticalAlign": "middle",
            "color": "#000000",
        },
        min_width=min_width,
        min_height=min_height,
    )


class TemplateCatalog:
    """Ordered, read-only list of widget templates for one design session."""

    def __init__(self, templates: List[WidgetTemplate]):
        self._templates = list(templates)
        self._by_id = {t.id: t for t in self._templates}

    def __iter__(self):
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, template_id: int) -> Optional[WidgetTemplate]:
        return self._by_id.get(template_id)

    def by_name(self, name: str) -> Optional[WidgetTemplate]:
        for t in self._templates:
            if t.name == name:
                return t
        return None

    def categories(self) -> Dict[str, List[WidgetTemplate]]:
        grouped: Dict[str, List[WidgetTemplate]] = {}
        for t in self._templates:
            grouped.setdefault(t.category, []).append(t)
        return grouped

    @classmethod
    async def load(cls, client=None, config=None) -> "TemplateCatalog":
        """Fetch the remote catalog; fall back to configured, then built-in templates."""
        if client is not None:
            remote = await client.get_templates()
            if remote:
                logger.info(f"Loaded {len(remote)} templates from backend")
                return cls(remote)
            logger.warning("Template catalog unavailable, using fallback templates")

        if config is not None and config.templates:
            return cls(config.templates)
        return cls(builtin_templates())
