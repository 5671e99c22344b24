"""
ThumbnailGenerator - Classifies originals and produces scaled derivatives.
"""

import io
import logging
import math
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from PIL import Image, ImageOps

from .errors import ScaleError


SVG_CONTENT_TYPE = 'image/svg+xml'
JPEG_CONTENT_TYPE = 'image/jpeg'

EXIF_ORIENTATION = 0x0112
# EXIF orientations that swap width and height
TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}

DECODE_ERRORS = (OSError, ValueError, EOFError, Image.DecompressionBombError)
ENCODE_ERRORS = (OSError, ValueError)

# JPEG stores dimensions in 16 bits; libjpeg caps them at 65500
MAX_JPEG_DIMENSION = 65500
MAX_OUTPUT_PIXELS = 40_000_000


class ImageClass(Enum):
    VECTOR = 'vector'
    RASTER = 'raster'


def media_type(content_type: Optional[str]) -> str:
    """Lower-cased media type without parameters ("image/svg+xml; charset=utf-8" -> "image/svg+xml")."""
    return (content_type or '').split(';', 1)[0].strip().lower()


def classify(content_type: Optional[str]) -> ImageClass:
    """SVG is vector; every other type is treated as raster and attempted."""
    if media_type(content_type) == SVG_CONTENT_TYPE:
        return ImageClass.VECTOR
    return ImageClass.RASTER


@dataclass(frozen=True)
class DerivedObject:
    """
    A derivative ready to be published and served.

    Attributes:
        data: Encoded payload
        content_type: Content type of data
        width: Output width in pixels (None for pass-through)
        height: Output height in pixels (None for pass-through)
    """
    data: bytes
    content_type: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def image_class(self) -> ImageClass:
        return classify(self.content_type)


class ThumbnailGenerator:
    """
    Scales raster originals to a target height and re-encodes them as JPEG.

    Vector originals pass through untouched.
    """

    def __init__(self, quality: int = 85, logger: Optional[logging.Logger] = None):
        """
        Initialize thumbnail generator.

        Args:
            quality: JPEG quality for output (default: 85)
            logger: Optional logger instance
        """
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)

    def scale(self, origin, target_size: int, diagnostics=None) -> DerivedObject:
        """
        Produce the derivative of origin at target_size.

        Args:
            origin: OriginObject (anything with data and content_type)
            target_size: Height of the output in pixels
            diagnostics: Optional Diagnostics accumulator

        Returns:
            DerivedObject

        Raises:
            ScaleError: The original could not be decoded, resized or encoded
        """
        image_class = classify(origin.content_type)
        if diagnostics is not None:
            diagnostics.log_val('image_class', image_class.value)

        if image_class is ImageClass.VECTOR:
            return DerivedObject(data=origin.data, content_type=origin.content_type)

        with ExitStack() as stack:
            try:
                resized, source_size = self._resize(origin.data, target_size, stack)
            except DECODE_ERRORS as e:
                self.logger.error(f"Error setting up scaling pipeline: {e}")
                raise ScaleError("Failed to set up image scaling pipeline", str(e)) from e

            if diagnostics is not None:
                diagnostics.log_val('source_width', source_size[0])
                diagnostics.log_val('source_height', source_size[1])

            try:
                data = self._encode(resized)
            except ENCODE_ERRORS as e:
                self.logger.error(f"Error encoding thumbnail: {e}")
                raise ScaleError(
                    "Image resizing error: failed to generate scaled image", str(e)
                ) from e

            width, height = resized.size

        if diagnostics is not None:
            diagnostics.log_val('output_width', width)
            diagnostics.log_val('output_height', height)
            diagnostics.log_val('out_data_size', len(data))

        return DerivedObject(
            data=data,
            content_type=JPEG_CONTENT_TYPE,
            width=width,
            height=height,
        )

    @staticmethod
    def target_dimensions(width: int, height: int, target_size: int) -> Tuple[int, int]:
        """
        Output dimensions for a source of width x height scaled to target_size.

        The target applies to the height; the width follows the aspect ratio.

        Raises:
            ValueError: The source is empty, or the output would exceed the
                JPEG dimension limit or MAX_OUTPUT_PIXELS
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid source dimensions {width}x{height}")
        out_width = max(1, round(width * target_size / height))
        if out_width > MAX_JPEG_DIMENSION or out_width * target_size > MAX_OUTPUT_PIXELS:
            raise ValueError(
                f"output of {out_width}x{target_size} exceeds the scaled image limits"
            )
        return out_width, target_size

    def _resize(
        self,
        data: bytes,
        target_size: int,
        stack: ExitStack
    ) -> Tuple[Image.Image, Tuple[int, int]]:
        """Decode, orient, flatten and resize. Every image is closed by stack."""
        original = stack.enter_context(Image.open(io.BytesIO(data)))
        self._apply_draft(original, target_size)

        oriented = ImageOps.exif_transpose(original)
        if oriented is not original:
            stack.callback(oriented.close)
        source_size = oriented.size

        rgb = self._convert_color_mode(oriented)
        if rgb is not oriented:
            stack.callback(rgb.close)

        # draft() may already have shrunk the decoded image, so recompute
        # the width from what was actually decoded
        size = self.target_dimensions(rgb.width, rgb.height, target_size)
        resized = rgb.resize(size, Image.Resampling.LANCZOS)
        stack.callback(resized.close)
        return resized, source_size

    def _apply_draft(self, img: Image.Image, target_size: int) -> None:
        """Let the JPEG decoder shrink on load when the output is much smaller."""
        if img.format != 'JPEG':
            return
        width, height = img.size
        orientation = img.getexif().get(EXIF_ORIENTATION)
        if orientation in TRANSPOSED_ORIENTATIONS:
            # Target height applies to the stored width once rotated
            scale = target_size / width
        else:
            scale = target_size / height
        if scale < 1:
            img.draft('RGB', (math.ceil(width * scale), math.ceil(height * scale)))

    def _encode(self, img: Image.Image) -> bytes:
        output = io.BytesIO()
        img.save(output, format='JPEG', quality=self.quality, optimize=True)
        return output.getvalue()

    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Convert image to RGB, flattening transparency onto white."""
        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode == 'P':
            rgba = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img
