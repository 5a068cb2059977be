"""
Utility functions for timestamps, text normalization and embedded-image payloads.
"""
import base64
import binascii
import re
import time
from datetime import datetime, timezone
from typing import Optional, Tuple

DATA_URL_PREFIX = "data:image/"
DATA_URL_EXT_RE = re.compile(r"data:image/([a-zA-Z0-9]+);")
DEFAULT_IMAGE_EXT = "jpeg"


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def now_ms() -> int:
    """Return current epoch time in milliseconds."""
    return int(time.time() * 1000)


def clean_text(s: Optional[str]) -> str:
    """Clean and normalize text by removing extra whitespace."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def decode_image_data_url(data_url: Optional[str]) -> Optional[Tuple[bytes, str]]:
    """
    Decode a ``data:image/<ext>;base64,<payload>`` string.

    Returns (binary payload, file extension) or None when the string is not
    an embedded image or its payload is not valid base64.
    """
    if not data_url or not data_url.startswith(DATA_URL_PREFIX):
        return None

    header, sep, payload = data_url.partition(",")
    if not sep or not payload:
        return None

    try:
        binary = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None

    m = DATA_URL_EXT_RE.match(header)
    ext = m.group(1).lower() if m else DEFAULT_IMAGE_EXT
    return binary, ext


def image_filename(index: int, ext: str, timestamp_ms: Optional[int] = None) -> str:
    """Time-based unique file name for the image at ``index``."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"image-{timestamp_ms}-{index}.{ext}"


def car_folder_path(car_id: str) -> str:
    """Storage folder that groups all images of one car."""
    return f"cars/{car_id}"
