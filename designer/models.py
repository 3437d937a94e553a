"""
Data models for screen designs, their widgets and the template catalog.

Field names follow the camelCase wire format used by the design store, so
``model_dump(by_alias=True)`` round-trips the JSON documents unchanged.
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Custom widget templates use ids offset by this constant so they never
# collide with the built-in template ids.
CUSTOM_WIDGET_TEMPLATE_OFFSET = 10000

MIN_WIDGET_SIZE = 10

PAYLOAD_FIELDS = ("templateId", "x", "y", "width", "height", "rotation", "config", "zIndex")


def normalize_rotation(degrees: float) -> int:
    """Normalise an angle into the half-open range [0, 360)."""
    return int(((math.floor(degrees + 0.5) % 360) + 360) % 360)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class WidgetTemplate(_WireModel):
    """A catalog entry. Never mutated by the designer."""
    id: int
    name: str = Field(description="Kind discriminator, e.g. 'clock'")
    label: str = ""
    description: str = ""
    category: str = "basic"
    default_config: Dict[str, Any] = Field(default_factory=dict, alias="defaultConfig")
    min_width: int = Field(default=MIN_WIDGET_SIZE, alias="minWidth")
    min_height: int = Field(default=MIN_WIDGET_SIZE, alias="minHeight")

    @property
    def is_custom(self) -> bool:
        return (
            self.id >= CUSTOM_WIDGET_TEMPLATE_OFFSET
            or self.name.startswith("custom-")
            or self.category == "custom"
        )


class ScreenWidget(_WireModel):
    """A widget placed on a design. Negative ids are local, positive ids persisted."""
    id: int
    template_id: int = Field(alias="templateId")
    x: float = 0
    y: float = 0
    width: float = 100
    height: float = 50
    rotation: int = 0
    config: Dict[str, Any] = Field(default_factory=dict)
    z_index: int = Field(default=0, alias="zIndex")
    template: Optional[WidgetTemplate] = Field(default=None, exclude=True)

    @field_validator("rotation", mode="before")
    @classmethod
    def _normalize_rotation(cls, v):
        return normalize_rotation(float(v or 0))

    @field_validator("width", "height")
    @classmethod
    def _min_size(cls, v: float) -> float:
        return max(MIN_WIDGET_SIZE, v)

    @property
    def is_custom(self) -> bool:
        return self.template_id >= CUSTOM_WIDGET_TEMPLATE_OFFSET

    @property
    def is_local(self) -> bool:
        return self.id < 0

    def to_payload(self) -> Dict[str, Any]:
        """Wire record for saving; drops the attached template."""
        data = self.model_dump(by_alias=True)
        payload = {k: data[k] for k in PAYLOAD_FIELDS}
        if not self.is_local:
            payload["id"] = self.id
        return payload


class ScreenDesign(_WireModel):
    id: Optional[int] = None
    name: str = ""
    width: int = 800
    height: int = 480
    background: str = "#ffffff"
    widgets: List[ScreenWidget] = Field(default_factory=list)

    def paint_order(self) -> List[ScreenWidget]:
        """Widgets sorted by zIndex; ties keep insertion order."""
        return sorted(self.widgets, key=lambda w: w.z_index)

    def get_widget(self, widget_id: int) -> Optional[ScreenWidget]:
        for widget in self.widgets:
            if widget.id == widget_id:
                return widget
        return None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "background": self.background,
            "widgets": [w.to_payload() for w in self.widgets],
        }


class FieldMeta(_WireModel):
    """Describes one resolvable field of a data source (autocompletion only)."""
    path: str
    type: str = "string"
    sample: Any = None
    is_image_url: bool = Field(default=False, alias="isImageUrl")
    is_link: bool = Field(default=False, alias="isLink")


class ScriptExecutionResult(BaseModel):
    success: bool
    output: Any = None
    variables: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    duration_ms: float = 0.0


class DeviceContext(_WireModel):
    """Live device readings; absent values render as placeholders."""
    battery: Optional[float] = None
    wifi: Optional[int] = None
    device_name: Optional[str] = Field(default=None, alias="deviceName")
    firmware_version: Optional[str] = Field(default=None, alias="firmwareVersion")
    mac_address: Optional[str] = Field(default=None, alias="macAddress")
