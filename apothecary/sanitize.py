from __future__ import annotations

import html
from typing import Optional

import bleach


def clean_text(value: Optional[str]) -> Optional[str]:
    """
    Strip markup from free-text input before it is stored.

    bleach escapes the text it keeps; the JSON API returns plain text, so
    entities are decoded again and ``&`` survives as ``&``.
    """
    if value is None:
        return None
    cleaned = html.unescape(bleach.clean(value, tags=[], strip=True)).strip()
    return cleaned or None
