# catalog/utils.py
# Shared logging setup plus small helpers for product image references.

import logging
import re
from typing import Iterable, List
from urllib.parse import urlparse

from decouple import config

LOG_LEVEL = config("LOG_LEVEL", default="INFO")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("catalog")

_DATA_URL_RE = re.compile(r"^data:image/[\w.+-]+;base64,[A-Za-z0-9+/=\s]+$")


def is_valid_image_reference(ref) -> bool:
    """True for http(s) URLs with a host or base64 `data:image/...` URLs."""
    if not isinstance(ref, str):
        return False
    ref = ref.strip()
    if not ref:
        return False
    if ref.startswith("data:"):
        return bool(_DATA_URL_RE.match(ref))
    try:
        parsed = urlparse(ref)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def valid_image_references(images: Iterable) -> List[str]:
    return [ref.strip() for ref in (images or []) if is_valid_image_reference(ref)]


def short_ref(ref: str, limit: int = 60) -> str:
    """Shorten image references (data URLs can be huge) for log lines."""
    return ref if len(ref) <= limit else ref[:limit] + "..."
