"""
Provider-agnostic interface for the image transformation capability.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from crop_review.models.jobs import Dimensions, ResizeSpec


class TransformResult:
    """Result from an image transformation."""

    def __init__(self, derived_path: Path, source_dimensions: Dimensions):
        """
        Initialize transform result.

        Args:
            derived_path: Where the derived image was written
            source_dimensions: Intrinsic width/height of the source image
        """
        self.derived_path = derived_path
        self.source_dimensions = source_dimensions


class IImageTransformer(ABC):
    """Interface for image transformers."""

    @abstractmethod
    def transform(
        self,
        source_path: Union[str, Path],
        spec: ResizeSpec,
        output_path: Union[str, Path],
    ) -> TransformResult:
        """
        Produce a derived image from a source file.

        Args:
            source_path: Path to the uploaded image
            spec: Resolved resize parameters
            output_path: Where the derived image must be written

        Returns:
            TransformResult with the derived path and source dimensions

        Raises:
            DecodeFailureError: Source is unreadable or corrupt
            UnsupportedFormatError: Source encoding is not supported
            StorageFailureError: Output could not be written
        """
        pass
