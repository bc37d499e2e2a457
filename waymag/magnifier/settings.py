"""
Magnifier display options and the rules that keep them in range.

Out-of-range numbers are replaced by their default rather than pulled to the
nearest bound; only the static window position is clamped (to zero).
"""

import dataclasses
import enum
from typing import Any, Dict, Mapping, Tuple


class Shape(enum.Enum):
    CIRCLE = "circle"
    RECTANGLE = "rectangle"


DEFAULT_SHAPE = Shape.RECTANGLE
DEFAULT_WIDTH = 350
DEFAULT_HEIGHT = 350
DEFAULT_ZOOM = 2

ZOOM_BOUNDS: Tuple[int, int] = (2, 16)
HEIGHT_BOUNDS: Tuple[int, int] = (50, 600)
WIDTH_BOUNDS: Dict[Shape, Tuple[int, int]] = {
    Shape.CIRCLE: (100, 600),
    Shape.RECTANGLE: (100, 800),
}

BOOLEAN_FIELDS = (
    "static_window",
    "follow_focus",
    "follow_text_cursor",
    "bilinear_filter",
)
INTEGER_FIELDS = ("width", "height", "zoom", "x", "y")


@dataclasses.dataclass(frozen=True)
class MagnifierSettings:
    shape: Shape = DEFAULT_SHAPE
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    zoom: int = DEFAULT_ZOOM
    static_window: bool = False
    x: int = 0
    y: int = 0
    follow_focus: bool = False
    follow_text_cursor: bool = False
    bilinear_filter: bool = False

    def replace(self, **changes: Any) -> "MagnifierSettings":
        return dataclasses.replace(self, **changes)

    def to_config(self) -> Dict[str, Any]:
        """Flat mapping suitable for the plugin's TOML section."""
        values = dataclasses.asdict(self)
        values["shape"] = self.shape.value
        return values

    @classmethod
    def from_config(cls, section: Mapping[str, Any]) -> "MagnifierSettings":
        """
        Builds normalized settings from a config section. Keys that are
        missing or hold the wrong type fall back to their defaults.
        """
        defaults = cls()
        values: Dict[str, Any] = {"shape": parse_shape(section.get("shape"))}
        for name in INTEGER_FIELDS:
            value = section.get(name)
            if isinstance(value, bool) or not isinstance(value, int):
                value = getattr(defaults, name)
            values[name] = value
        for name in BOOLEAN_FIELDS:
            value = section.get(name)
            if isinstance(value, bool):
                values[name] = value
            elif isinstance(value, int) and value in (0, 1):
                values[name] = bool(value)
            else:
                values[name] = getattr(defaults, name)
        return normalize_settings(cls(**values))


def parse_shape(value: Any) -> Shape:
    """Accepts a Shape, its name/value in any case, or 0/1 as stored by lxpanel."""
    if isinstance(value, Shape):
        return value
    if isinstance(value, str):
        try:
            return Shape(value.strip().lower())
        except ValueError:
            return DEFAULT_SHAPE
    if isinstance(value, int) and not isinstance(value, bool) and value in (0, 1):
        return Shape.RECTANGLE if value else Shape.CIRCLE
    return DEFAULT_SHAPE


def _in_range(value: int, bounds: Tuple[int, int], default: int) -> int:
    low, high = bounds
    if low <= value <= high:
        return value
    return default


def normalize_settings(settings: MagnifierSettings) -> MagnifierSettings:
    """Returns a copy whose numeric fields all respect their bounds."""
    shape = parse_shape(settings.shape)
    return MagnifierSettings(
        shape=shape,
        width=_in_range(int(settings.width), WIDTH_BOUNDS[shape], DEFAULT_WIDTH),
        height=_in_range(int(settings.height), HEIGHT_BOUNDS, DEFAULT_HEIGHT),
        zoom=_in_range(int(settings.zoom), ZOOM_BOUNDS, DEFAULT_ZOOM),
        static_window=bool(settings.static_window),
        x=max(0, int(settings.x)),
        y=max(0, int(settings.y)),
        follow_focus=bool(settings.follow_focus),
        follow_text_cursor=bool(settings.follow_text_cursor),
        bilinear_filter=bool(settings.bilinear_filter),
    )


def coerce_setting(name: str, raw: str) -> Any:
    """
    Converts a textual value (from the control socket) for field `name`.
    Raises ValueError for unknown fields or unparsable values.
    """
    if name == "shape":
        text = raw.strip().lower()
        if text not in {s.value for s in Shape}:
            raise ValueError(f"shape must be one of: {', '.join(s.value for s in Shape)}")
        return Shape(text)
    if name in INTEGER_FIELDS:
        return int(raw)
    if name in BOOLEAN_FIELDS:
        text = raw.strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"{name} expects a boolean, got {raw!r}")
    raise ValueError(f"Unknown magnifier setting: {name}")
