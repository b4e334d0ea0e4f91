from __future__ import annotations
import re
from typing import Any, Iterable, Optional


HOSTED_ASSET_DOMAIN = "codahosted.io/"

IMAGE_EXTS = ("jpe?g", "png", "gif", "webp", "svg", "bmp", "tiff?", "ico", "apng", "avif")

IMAGE_URL_RE = re.compile(r"^https?://\S+\.(" + "|".join(IMAGE_EXTS) + r")(\?.*)?$", re.IGNORECASE)
HOSTED_URL_RE = re.compile(r"^https?://codahosted\.io/")
MD_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")
TRIPLE_WRAP_RE = re.compile(r"^```([\s\S]*?)```$")
SINGLE_WRAP_RE = re.compile(r"^`([^`]*)`$")

IMAGE_OBJECT_KEYS = ("url", "contentUrl", "thumbnailUrl")
LINKED_ROW_KEYS = ("url", "imageUrl")


def extract_url_from_markdown(text: str) -> str:
    m = MD_IMAGE_RE.search(text)
    if m and m.group(1):
        return m.group(1).strip()
    m = TRIPLE_WRAP_RE.match(text)
    if m:
        return m.group(1).strip()
    m = SINGLE_WRAP_RE.match(text)
    if m:
        return m.group(1).strip()
    return text.strip()


def is_valid_asset_url(url: str) -> bool:
    trimmed = url.strip()
    return trimmed.startswith(("http://", "https://")) or HOSTED_ASSET_DOMAIN in trimmed


def is_likely_image_url(url: str) -> bool:
    if not isinstance(url, str):
        return False
    trimmed = url.strip()
    return bool(IMAGE_URL_RE.match(trimmed) or HOSTED_URL_RE.match(trimmed))


def is_acceptable_image_url(url: str) -> bool:
    return is_valid_asset_url(url) or is_likely_image_url(url)


def _first_acceptable(candidates: Iterable[Any]) -> Optional[str]:
    for url in candidates:
        if isinstance(url, str) and is_acceptable_image_url(url):
            return url
    return None


def _from_image_object(obj: dict) -> Optional[str]:
    if obj.get("@type") != "ImageObject":
        return None
    return _first_acceptable(obj.get(k) for k in IMAGE_OBJECT_KEYS)


def _from_wrapper(obj: dict) -> Optional[str]:
    for key in ("url", "link"):
        if isinstance(obj.get(key), str):
            return obj[key]
    for key in ("value", "rawValue"):
        if isinstance(obj.get(key), str):
            return extract_url_from_markdown(obj[key])
    for key in ("imageUrl", "thumbnailUrl"):
        if isinstance(obj.get(key), str):
            return obj[key]
    linked = obj.get("linkedRow")
    if isinstance(linked, dict):
        for key in LINKED_ROW_KEYS:
            if isinstance(linked.get(key), str):
                return linked[key]
    return None


def extract_image_url(value: Any) -> Optional[str]:
    """Pick an image URL out of a Coda cell, or None when nothing acceptable is found.

    Priority: plain string (markdown image / code span unwrapped), ImageObject
    entries, then generic wrapper keys and ``linkedRow``.
    """
    candidate: Optional[str] = None
    if isinstance(value, str):
        candidate = extract_url_from_markdown(value)
    elif isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                candidate = _from_image_object(item)
                if candidate:
                    break
    elif isinstance(value, dict):
        candidate = _from_image_object(value) or _from_wrapper(value)

    if candidate and is_acceptable_image_url(candidate):
        return candidate.strip()
    return None


def extract_file_url(value: Any) -> Optional[str]:
    candidate: Optional[str] = None
    if isinstance(value, str):
        candidate = extract_url_from_markdown(value)
    elif isinstance(value, dict):
        for key in ("url", "link"):
            if isinstance(value.get(key), str):
                candidate = value[key]
                break
    if candidate and is_valid_asset_url(candidate):
        return candidate.strip()
    return None
