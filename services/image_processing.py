"""
Post-processing for provider images.

Two steps run on every returned image:

1. Border trim: locate the bounding box of non-near-white content and crop
   to it, unless the detected borders are negligible.
2. Exact dimensions: cover-fit (centre crop) to the requested size.

Both steps are best-effort. Any decode or encode failure returns the input
bytes untouched.
"""

import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

DEFAULT_BORDER_THRESHOLD = 240

# Borders under this share of the perimeter are left alone
MIN_BORDER_PERCENTAGE = 1.0


@dataclass(frozen=True)
class ContentBounds:
    """Inclusive bounding box of image content."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    def borders(self, image_width: int, image_height: int) -> tuple[int, int, int, int]:
        """Border thickness as (left, top, right, bottom) in pixels."""
        return (
            self.min_x,
            self.min_y,
            image_width - self.max_x - 1,
            image_height - self.max_y - 1,
        )

    def border_percentage(self, image_width: int, image_height: int) -> float:
        """Sum of the four border thicknesses relative to the perimeter, in percent."""
        border_pixels = sum(self.borders(image_width, image_height))
        return 100.0 * border_pixels / (2 * (image_width + image_height))


def find_content_bounds(
    image: Image.Image,
    threshold: int = DEFAULT_BORDER_THRESHOLD,
) -> ContentBounds | None:
    """
    Find the bounding box of pixels that are not near-white.

    A pixel counts as content when its red, green or blue sample is strictly
    below `threshold`. Every pixel is visited once in row-major order since
    any later pixel may still extend the box.

    Args:
        image: Decoded image in any mode
        threshold: Brightness threshold (0-255)

    Returns:
        ContentBounds, or None when the image has no content
    """
    rgb = image if image.mode == "RGB" else image.convert("RGB")
    width, height = rgb.size
    pixels = rgb.tobytes()

    min_x, min_y = width, height
    max_x, max_y = -1, -1

    idx = 0
    for y in range(height):
        for x in range(width):
            if (
                pixels[idx] < threshold
                or pixels[idx + 1] < threshold
                or pixels[idx + 2] < threshold
            ):
                if x < min_x:
                    min_x = x
                if x > max_x:
                    max_x = x
                if y < min_y:
                    min_y = y
                if y > max_y:
                    max_y = y
            idx += 3

    if min_x > max_x or min_y > max_y:
        return None

    return ContentBounds(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)


def _encode(image: Image.Image, fmt: str | None) -> bytes:
    fmt = (fmt or "PNG").upper()
    if fmt == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buf = BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


def remove_borders(data: bytes, threshold: int = DEFAULT_BORDER_THRESHOLD) -> bytes:
    """
    Crop near-white borders from an encoded image.

    Args:
        data: Encoded image bytes
        threshold: Brightness threshold for content detection

    Returns:
        Cropped image bytes, or the input bytes when there is nothing worth
        cropping or processing fails
    """
    try:
        with Image.open(BytesIO(data)) as image:
            image.load()
            fmt = image.format
            width, height = image.size

            bounds = find_content_bounds(image, threshold)
            if bounds is None:
                logger.info("No content detected, keeping original image")
                return data

            percentage = bounds.border_percentage(width, height)
            if percentage < MIN_BORDER_PERCENTAGE:
                logger.info(f"Minimal borders detected ({percentage:.2f}%), keeping original")
                return data

            left, top, right, bottom = bounds.borders(width, height)
            logger.info(
                f"Removing borders: {width}x{height} -> {bounds.width}x{bounds.height} "
                f"(top={top}px, bottom={bottom}px, left={left}px, right={right}px)"
            )
            cropped = image.crop((bounds.min_x, bounds.min_y, bounds.max_x + 1, bounds.max_y + 1))
            return _encode(cropped, fmt)
    except Exception as e:
        logger.warning(f"Border removal failed, keeping original image: {e}")
        return data


def ensure_dimensions(data: bytes, width: int, height: int) -> bytes:
    """
    Resize an encoded image to exactly width x height.

    Uses a cover fit: the image is scaled to fill the box and the overflow is
    cropped equally from both sides.

    Returns:
        Resized image bytes, or the input bytes if processing fails
    """
    try:
        with Image.open(BytesIO(data)) as image:
            image.load()
            fmt = image.format
            if image.size == (width, height):
                return data
            fitted = ImageOps.fit(
                image,
                (width, height),
                method=Image.Resampling.LANCZOS,
                centering=(0.5, 0.5),
            )
            return _encode(fitted, fmt)
    except Exception as e:
        logger.warning(f"Dimension enforcement failed, keeping original image: {e}")
        return data


def detect_mime_type(data: bytes, default: str = "image/png") -> str:
    """MIME type of encoded image bytes, or `default` when it cannot be identified."""
    try:
        with Image.open(BytesIO(data)) as image:
            fmt = image.format
    except Exception:
        return default
    return Image.MIME.get(fmt, default) if fmt else default


def normalize_image(
    data: bytes,
    width: int | None = None,
    height: int | None = None,
    threshold: int = DEFAULT_BORDER_THRESHOLD,
) -> bytes:
    """Trim borders, then enforce the target size when both dimensions are given."""
    processed = remove_borders(data, threshold)
    if width and height:
        processed = ensure_dimensions(processed, width, height)
    return processed
