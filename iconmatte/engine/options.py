"""Processing options shared by every image of a batch."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .matting import parse_color
from .quality import validate_quality_params


# camelCase keys accepted by from_dict, mapped to field names.
_CAMEL_KEYS = {
    "threshold": "threshold",
    "edgeSmoothing": "edge_smoothing",
    "targetBackgroundColor": "target_background_color",
    "edgeCleanup": "edge_cleanup",
    "erodePixels": "erode_pixels",
    "removeLightEdges": "remove_light_edges",
    "removeLiquidGlass": "remove_liquid_glass",
    "glassOutlineWidth": "glass_outline_width",
    "glassBrightness": "glass_brightness",
    "qualityMethod": "quality_method",
    "qualityParams": "quality_params",
}


def _check_int(name: str, value: Any, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Invalid {name}: {value!r}. Expected an integer")
    if not low <= value <= high:
        raise ValueError(f"Invalid {name}: {value}. Expected {low}-{high}")


@dataclass(frozen=True)
class ProcessingOptions:
    """
    Matting and refinement settings for a run.

    Values are validated on construction, so a ProcessingOptions instance
    is always usable as-is by the pipeline.

    Example:
        options = ProcessingOptions(threshold=40, erode_pixels=1)
        options = ProcessingOptions.from_dict({"edgeCleanup": True})
    """

    threshold: int = 30
    edge_smoothing: bool = True
    target_background_color: Optional[Union[str, Tuple[int, int, int]]] = None
    edge_cleanup: bool = False
    erode_pixels: int = 0
    remove_light_edges: bool = False
    remove_liquid_glass: bool = False
    glass_outline_width: int = 2
    glass_brightness: int = 200
    quality_method: Optional[str] = None
    quality_params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        _check_int("threshold", self.threshold, 1, 100)
        _check_int("erode pixels", self.erode_pixels, 0, 3)
        _check_int("glass outline width", self.glass_outline_width, 1, 5)
        _check_int("glass brightness", self.glass_brightness, 0, 255)

        for name in ("edge_smoothing", "edge_cleanup", "remove_light_edges", "remove_liquid_glass"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"Invalid {name}: {getattr(self, name)!r}. Expected a boolean")

        if self.target_background_color is not None:
            object.__setattr__(
                self, "target_background_color", parse_color(self.target_background_color)
            )

        if self.quality_method is not None:
            validate_quality_params(self.quality_method, dict(self.quality_params))
        elif self.quality_params:
            raise ValueError("quality_params given without a quality_method")

        object.__setattr__(self, "quality_params", dict(self.quality_params))

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "ProcessingOptions":
        """
        Build options from a flat record.

        Args:
            values: Mapping with snake_case field names or their camelCase
                    equivalents. Unknown keys are ignored.

        Returns:
            Validated options.
        """
        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            name = _CAMEL_KEYS.get(key, key)
            if name in names:
                kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Flat snake_case record; colors become lists so it serializes to JSON."""
        record = {f.name: getattr(self, f.name) for f in fields(self)}
        if record["target_background_color"] is not None:
            record["target_background_color"] = list(record["target_background_color"])
        record["quality_params"] = dict(record["quality_params"])
        return record
