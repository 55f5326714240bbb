"""
Crop policy: maps a requested crop type to concrete resize parameters.

Pure functions only; nothing here touches the filesystem or the job store.
"""
import re
from typing import Dict, List, Optional, Union

from crop_review.config import settings
from crop_review.models.jobs import FitMode, PresetView, ResizeSpec
from crop_review.utils.errors import InvalidCropSpecError

CUSTOM_CROP_KIND = "custom"

CROP_PRESETS: Dict[str, ResizeSpec] = {
    "thumbnail": ResizeSpec(width=150, height=150, fit=FitMode.COVER),
    "banner": ResizeSpec(width=1200, height=400, fit=FitMode.COVER),
    "avatar": ResizeSpec(width=200, height=200, fit=FitMode.COVER),
    "product": ResizeSpec(width=800, height=600, fit=FitMode.BOUNDED),
    "square": ResizeSpec(width=500, height=500, fit=FitMode.COVER),
}

_DIGITS = re.compile(r"[0-9]+")


def _parse_dimension(name: str, value: Union[str, int, None]) -> int:
    """Parse one custom side as a strictly positive integer."""
    if value is None:
        raise InvalidCropSpecError(
            "Custom width and height are required", details={"field": name}
        )
    if isinstance(value, bool):
        raise InvalidCropSpecError(f"{name} must be a positive integer", details={"field": name})
    if isinstance(value, int):
        parsed = value
    else:
        text = value.strip()
        if not text:
            raise InvalidCropSpecError(
                "Custom width and height are required", details={"field": name}
            )
        if not _DIGITS.fullmatch(text):
            raise InvalidCropSpecError(
                f"{name} must be a positive integer", details={"field": name, "value": value}
            )
        parsed = int(text)

    if parsed <= 0:
        raise InvalidCropSpecError(
            f"{name} must be a positive integer", details={"field": name, "value": value}
        )
    if parsed > settings.MAX_CUSTOM_DIMENSION_PX:
        raise InvalidCropSpecError(
            f"{name} must not exceed {settings.MAX_CUSTOM_DIMENSION_PX} pixels",
            details={"field": name, "value": value},
        )
    return parsed


def resolve(
    crop_kind: Optional[str],
    custom_width: Union[str, int, None] = None,
    custom_height: Union[str, int, None] = None,
) -> ResizeSpec:
    """
    Resolve a crop type into a ResizeSpec.

    Args:
        crop_kind: Preset name (e.g. "thumbnail") or "custom"
        custom_width: Width for "custom", as submitted (string or int)
        custom_height: Height for "custom", as submitted (string or int)

    Returns:
        ResizeSpec with target width, height and fit mode

    Raises:
        InvalidCropSpecError: Unknown crop type, or missing/non-positive custom sides
    """
    if crop_kind == CUSTOM_CROP_KIND:
        width = _parse_dimension("customWidth", custom_width)
        height = _parse_dimension("customHeight", custom_height)
        return ResizeSpec(width=width, height=height, fit=FitMode.COVER)

    preset = CROP_PRESETS.get(crop_kind) if crop_kind else None
    if preset is None:
        raise InvalidCropSpecError("Invalid crop type", details={"cropType": crop_kind})
    return preset


def list_presets() -> List[PresetView]:
    """Return the fixed presets in display order."""
    return [
        PresetView(cropType=name, width=spec.width, height=spec.height, fit=spec.fit)
        for name, spec in CROP_PRESETS.items()
    ]
