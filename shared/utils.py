"""Shared utility functions for the completion form engine.

Image helpers used by the photo pipeline before anything is uploaded.
"""

import hashlib
import logging
from functools import wraps
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)


class CorruptedImageError(Exception):
    """Raised when image data is corrupted and cannot be processed."""
    pass


def handle_image_errors(func):
    """Decorator to handle image processing errors consistently.

    Converts image decoding exceptions to CorruptedImageError or returns None
    for non-corruption errors. Handles logging automatically.

    The decorated function should accept image_path as a keyword argument
    for proper error message formatting.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        image_path = kwargs.get('image_path')

        def log_and_raise(msg, exc):
            logger.error(f"{msg} - file '{image_path}': {exc}", exc_info=True)
            raise CorruptedImageError(f"{msg}: {exc}") from exc

        try:
            return func(*args, **kwargs)
        except UnidentifiedImageError as e:
            log_and_raise("Corrupted or unsupported image format", e)
        except OSError as e:
            if "cannot identify image file" in str(e).lower() or "truncated" in str(e).lower():
                log_and_raise("Corrupted image file", e)
            logger.warning(f"OSError reading image file '{image_path}': {e}")
            return None
        except ValueError as e:
            log_and_raise("Error processing image", e)

    return wrapper


# Photo hash algorithm constant - always SHA256
PHOTO_HASH_ALGO = 'sha256'


def compute_photo_hash(image_path):
    """Compute SHA256 of an image file, read in chunks.

    Args:
        image_path: Path to the image file

    Returns:
        str: Hexadecimal hash string (64 characters)
    """
    hasher = hashlib.new(PHOTO_HASH_ALGO)
    with open(image_path, 'rb') as f:
        while chunk := f.read(8192):
            hasher.update(chunk)
    return hasher.hexdigest()


@handle_image_errors
def normalize_image_orientation(image_path=None, output_path=None, rotate=0, quality=85):
    """Re-encode a photo so its pixel data matches its EXIF display orientation.

    Some viewers (TradieConnect among them) ignore the EXIF orientation tag, so
    the transpose is baked into the pixels and the tag dropped.

    Args:
        image_path (str): Source image
        output_path (str): Where the normalized JPEG is written
        rotate (int, optional): Extra rotation in degrees clockwise, applied
            after the EXIF transpose
        quality (int, optional): JPEG quality (1-100). Defaults to 85

    Returns:
        str or None: output_path if successful, None for non-corruption errors

    Raises:
        CorruptedImageError: When the image cannot be decoded.
    """
    with Image.open(image_path) as img:
        normalized = ImageOps.exif_transpose(img)
        if rotate:
            # PIL rotates counter-clockwise
            normalized = normalized.rotate(-rotate, expand=True)
        if normalized.mode not in ('RGB', 'L'):
            normalized = normalized.convert('RGB')
        normalized.save(output_path, format='JPEG', quality=quality)
    return output_path
