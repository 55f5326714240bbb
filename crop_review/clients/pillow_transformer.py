"""
Pillow-backed image transformer.
"""
import logging
import os
import struct
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps

from crop_review.clients.interfaces import IImageTransformer, TransformResult
from crop_review.config import settings
from crop_review.models.jobs import Dimensions, FitMode, ResizeSpec
from crop_review.utils.errors import (
    DecodeFailureError,
    StorageFailureError,
    UnsupportedFormatError,
)
from crop_review.utils.image_derivatives import bounded_resize, cover_resize, encode_jpeg
from crop_review.utils.logging import trace_calls

logger = logging.getLogger("crop_review")

SUPPORTED_SOURCE_FORMATS = frozenset({"JPEG", "PNG", "WEBP", "TIFF"})

# Malformed EXIF surfaces from exif_transpose as struct/key/type/index errors
DECODE_ERRORS = (
    OSError,
    SyntaxError,
    ValueError,
    struct.error,
    KeyError,
    TypeError,
    IndexError,
    Image.DecompressionBombError,
)


class PillowImageTransformer(IImageTransformer):
    """Crops/resizes with Pillow and always writes JPEG."""

    def __init__(self, quality: Optional[int] = None, allow_upscale: Optional[bool] = None):
        """
        Initialize transformer.

        Args:
            quality: JPEG quality for derived images (default from config)
            allow_upscale: Whether bounded fit may enlarge small sources (default from config)
        """
        self.quality = quality or settings.OUTPUT_JPEG_QUALITY
        self.allow_upscale = settings.ALLOW_UPSCALE if allow_upscale is None else allow_upscale

    @trace_calls
    def transform(
        self,
        source_path: Union[str, Path],
        spec: ResizeSpec,
        output_path: Union[str, Path],
    ) -> TransformResult:
        source_path = Path(source_path)
        output_path = Path(output_path)

        # Unidentifiable data lands here: UnidentifiedImageError is an OSError
        try:
            image = Image.open(source_path)
        except (OSError, Image.DecompressionBombError) as e:
            raise DecodeFailureError(
                "Failed to read image", details={"reason": str(e)}
            ) from e

        with image:
            if image.format not in SUPPORTED_SOURCE_FORMATS:
                raise UnsupportedFormatError(
                    f"Unsupported image format: {image.format}",
                    details={"format": image.format},
                )
            source_dimensions = Dimensions(width=image.width, height=image.height)

            try:
                image.load()
                oriented = ImageOps.exif_transpose(image)
                if spec.fit == FitMode.COVER:
                    resized = cover_resize(oriented, spec.width, spec.height)
                else:
                    resized = bounded_resize(
                        oriented, spec.width, spec.height, allow_upscale=self.allow_upscale
                    )
                payload = encode_jpeg(resized, quality=self.quality)
            except DECODE_ERRORS as e:
                raise DecodeFailureError(
                    "Failed to decode image", details={"reason": str(e)}
                ) from e

        self._write_atomically(output_path, payload)
        logger.debug(
            f"ImageTransformed source={source_path.name} output={output_path.name} "
            f"sourceSize={source_dimensions.width}x{source_dimensions.height} "
            f"box={spec.width}x{spec.height} fit={spec.fit.value} bytes={len(payload)}"
        )
        return TransformResult(derived_path=output_path, source_dimensions=source_dimensions)

    @staticmethod
    def _write_atomically(output_path: Path, payload: bytes) -> None:
        """Write to a sibling temp file and rename, so readers never see a partial image."""
        partial_path = output_path.with_name(output_path.name + ".part")
        try:
            with open(partial_path, "wb") as f:
                f.write(payload)
            os.replace(partial_path, output_path)
        except OSError as e:
            partial_path.unlink(missing_ok=True)
            raise StorageFailureError(
                "Failed to write cropped image", details={"reason": str(e)}
            ) from e
