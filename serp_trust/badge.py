"""Rendering hint: a small SVG badge encoded as a data URI."""

from __future__ import annotations

import base64

GREEN = "#10B981"
AMBER = "#F59E0B"
RED = "#EF4444"

_SVG_TEMPLATE = (
    '<svg width="25" height="25" viewBox="0 0 100 100" fill="none" xmlns="http://www.w3.org/2000/svg">'
    '<circle cx="50" cy="50" r="48" fill="{color}" stroke="#FFFFFF" stroke-width="4"/>'
    '<text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle" font-family="Arial, sans-serif" '
    'font-size="50" fill="#FFFFFF" font-weight="bold">{text}</text>'
    "</svg>"
)


def score_color(score: int) -> str:
    """Return the badge color for *score*."""
    if score >= 70:
        return GREEN
    if score >= 40:
        return AMBER
    return RED


def badge_svg(score: int) -> str:
    """Return the SVG markup for *score*; negative scores render as ``X``."""
    text = str(score) if score >= 0 else "X"
    return _SVG_TEMPLATE.format(color=score_color(score), text=text)


def rendering_hint(score: int) -> str:
    """Return the badge for *score* as a base64 ``data:image/svg+xml`` URI."""
    encoded = base64.b64encode(badge_svg(score).encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"
