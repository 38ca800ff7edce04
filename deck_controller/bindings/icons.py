"""SVG key images for the deck.

Images are 144x144 SVG documents handed to the surface as data URIs.
"""

from __future__ import annotations

import base64
from xml.sax.saxutils import escape

from deck_controller.models import (
    MODE_COLORS,
    MODE_LABELS,
    MODE_SUBLABELS,
    MODEL_COLORS,
    MODEL_LABELS,
    AgentModel,
    PermissionMode,
)

BACKGROUND = "#1a1a2e"
NEUTRAL = "#94a3b8"


def svg_to_data_uri(svg: str) -> str:
    """Encode an SVG document as a base64 data URI."""
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def _frame(body: str) -> str:
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" width="144" height="144" viewBox="0 0 144 144">'
        f'<rect width="144" height="144" rx="16" fill="{BACKGROUND}"/>'
        f"{body}</svg>"
    )


def mode_cycle_svg(mode: PermissionMode) -> str:
    """Circular-arrows icon with the mode's initial and label."""
    color = MODE_COLORS[mode]
    label = MODE_LABELS[mode]
    glyph = "!" if mode == PermissionMode.BYPASS_PERMISSIONS else label[0]
    return _frame(
        f'<circle cx="72" cy="55" r="32" fill="{color}" opacity="0.2"/>'
        f'<circle cx="72" cy="55" r="32" fill="none" stroke="{color}" stroke-width="3"/>'
        f'<path d="M48 55 A24 24 0 0 1 72 31" fill="none" stroke="{color}" stroke-width="2.5"/>'
        f'<path d="M96 55 A24 24 0 0 1 72 79" fill="none" stroke="{color}" stroke-width="2.5"/>'
        f'<text x="72" y="60" font-family="system-ui" font-size="14" font-weight="bold" '
        f'fill="{color}" text-anchor="middle">{escape(glyph)}</text>'
        f'<text x="72" y="115" font-family="system-ui" font-size="16" font-weight="bold" '
        f'fill="{color}" text-anchor="middle">{escape(label)}</text>'
    )


def mode_display_svg(mode: PermissionMode) -> str:
    """Label plus a short description of what the mode allows."""
    color = MODE_COLORS[mode]
    return _frame(
        f'<circle cx="72" cy="48" r="20" fill="{color}" opacity="0.3"/>'
        f'<text x="72" y="90" font-family="system-ui, sans-serif" font-size="20" '
        f'fill="{color}" text-anchor="middle" font-weight="bold">{escape(MODE_LABELS[mode])}</text>'
        f'<text x="72" y="115" font-family="system-ui, sans-serif" font-size="11" '
        f'fill="#666" text-anchor="middle">{escape(MODE_SUBLABELS[mode])}</text>'
    )


def model_svg(model: AgentModel) -> str:
    color = MODEL_COLORS[model]
    return _frame(
        f'<circle cx="72" cy="50" r="24" fill="{color}" opacity="0.25"/>'
        f'<text x="72" y="95" font-family="system-ui, sans-serif" font-size="22" '
        f'fill="{color}" text-anchor="middle" font-weight="bold">{escape(MODEL_LABELS[model])}</text>'
    )


def label_svg(label: str, color: str = NEUTRAL) -> str:
    """Plain labelled key, used by command and signal keys."""
    if len(label) > 10:
        label = label[:9] + "…"
    return _frame(
        f'<text x="72" y="80" font-family="system-ui, sans-serif" font-size="20" '
        f'fill="{color}" text-anchor="middle" font-weight="bold">{escape(label)}</text>'
    )
