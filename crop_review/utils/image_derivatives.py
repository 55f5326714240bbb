"""
Image derivative utilities for producing cropped/resized output images.

This module provides functions to:
- Fit an image to a box (cover or bounded)
- Flatten and encode the result as JPEG
"""
import logging
from io import BytesIO

from PIL import Image, ImageOps

logger = logging.getLogger("crop_review")


def cover_resize(image: Image.Image, width: int, height: int) -> Image.Image:
    """
    Scale and center-crop so the result fills exactly width x height.
    """
    return ImageOps.fit(
        image,
        (width, height),
        method=Image.Resampling.LANCZOS,
        centering=(0.5, 0.5),
    )


def bounded_resize(
    image: Image.Image, width: int, height: int, allow_upscale: bool = False
) -> Image.Image:
    """
    Scale to fit inside width x height while preserving aspect ratio.

    Images already inside the box are returned unchanged unless allow_upscale is set.
    """
    original_width, original_height = image.size
    scale = min(width / original_width, height / original_height)
    if scale >= 1 and not allow_upscale:
        logger.debug(
            f"BoundedResizeSkipped size={original_width}x{original_height} box={width}x{height}"
        )
        return image

    new_width = max(1, round(original_width * scale))
    new_height = max(1, round(original_height * scale))
    return image.resize((new_width, new_height), Image.Resampling.LANCZOS)


def flatten_to_rgb(image: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any transparency onto a white background."""
    if image.mode in ("RGBA", "LA", "P"):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        rgb_image = Image.new("RGB", image.size, (255, 255, 255))
        rgb_image.paste(image, mask=image.split()[-1])
        return rgb_image
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def encode_jpeg(image: Image.Image, quality: int = 90) -> bytes:
    """
    Encode an image as JPEG.

    Args:
        image: Image in any mode
        quality: JPEG quality (1-95)

    Returns:
        Encoded JPEG bytes
    """
    output = BytesIO()
    flatten_to_rgb(image).save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue()
