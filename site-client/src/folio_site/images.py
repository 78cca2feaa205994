"""Inline image encoding for content images."""

import base64
import io
from pathlib import Path

from PIL import Image


def image_mime_type(data: bytes) -> str:
    """Detect the MIME type of image bytes.

    Raises ValueError if the bytes are not an image Pillow can identify.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except OSError as e:
        raise ValueError("Not a readable image") from e

    mime = Image.MIME.get(fmt) if fmt else None
    if mime is None:
        raise ValueError(f"No MIME type for image format {fmt}")
    return mime


def encode_image(path: Path) -> str:
    """Read an image file and return it as a ``data:`` URL.

    Images are stored inline in the entity, not in separate blob storage.
    """
    data = path.read_bytes()
    mime = image_mime_type(data)
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"
