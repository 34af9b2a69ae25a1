from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..config import StructureConfig

if TYPE_CHECKING:
    from ..pipeline import PageResult

# Colors per assignment label (RGBA).  Header levels share one color.
DEFAULT_COLORS: Dict[str, tuple] = {
    "paragraph-text": (52, 152, 219, 255),
    "paragraph-start": (39, 174, 96, 255),
    "footnote-start": (231, 76, 60, 255),
    "footnote-text": (230, 126, 34, 255),
    "quote-text": (142, 68, 173, 255),
    "unknown": (127, 140, 141, 255),
    "header": (26, 82, 118, 255),
    "removed": (189, 195, 199, 255),
}

# Label prefixes drawn at each line's top-left corner
LABEL_PREFIXES = {
    "paragraph-text": "P",
    "paragraph-start": "PS",
    "footnote-start": "FS",
    "footnote-text": "F",
    "quote-text": "Q",
    "unknown": "U",
    "header": "H",
    "removed": "X",
}

# Vertical metric bands are filled with this alpha
BAND_ALPHA = 40


def _color_key(label: str) -> str:
    if label.startswith("header-"):
        return "header"
    return label if label in DEFAULT_COLORS else "unknown"


def _get_color(color_overrides: Optional[Dict[str, tuple]], key: str) -> tuple:
    """Get color for a key, using override if provided."""
    if color_overrides and key in color_overrides:
        return color_overrides[key]
    return DEFAULT_COLORS[key]


def _scale_box(bbox: Tuple[float, float, float, float], scale: float) -> Tuple[float, ...]:
    return tuple(v * scale for v in bbox)


def _draw_label(
    draw: ImageDraw.ImageDraw,
    x: float,
    y: float,
    label: str,
    color: tuple,
    scale: float,
) -> None:
    """Draw a small label with a white backing box just above (x, y)."""
    font_size = max(8, int(14 * scale))
    try:
        font = ImageFont.truetype("arial.ttf", font_size)
    except (OSError, IOError):
        font = ImageFont.load_default()

    bbox = draw.textbbox((x, y - font_size - 2), label, font=font)
    bg_bbox = (bbox[0] - 1, bbox[1] - 1, bbox[2] + 1, bbox[3] + 1)
    draw.rectangle(bg_bbox, fill=(255, 255, 255, 200))
    draw.text((x, y - font_size - 2), label, fill=color[:3], font=font)


def draw_roles_overlay(
    page_result: "PageResult",
    out_path: Path,
    page_height: Optional[float] = None,
    scale: float = 0.5,
    background: Image.Image | None = None,
    color_overrides: Optional[Dict[str, tuple]] = None,
    cfg: StructureConfig | None = None,
) -> Path:
    """Render classified lines and page-metric bands as a PNG for visual QA.

    Every line the sequencer saw is outlined in its role's color and
    labelled with a prefix and its line index.  Each page-metrics range is
    shaded as a vertical band spanning its min/max x0.

    If *background* is given (e.g. the scanned page) it is used as the
    base and resized to the overlay size.  Without *page_height* the
    height is taken from the lowest line box.
    """
    if cfg is None:
        cfg = StructureConfig()
    width = page_result.page_width or cfg.page_width
    if page_height is None:
        bottoms = [a.bbox.y1 for a in page_result.assignments if a.bbox is not None]
        page_height = (max(bottoms) if bottoms else 0.0) + 50.0

    img_w = max(1, int(width * scale))
    img_h = max(1, int(page_height * scale))
    if background is not None:
        img = background.convert("RGBA")
        if img.size != (img_w, img_h):
            img = img.resize((img_w, img_h))
    else:
        img = Image.new("RGBA", (img_w, img_h), (255, 255, 255, 255))
    draw = ImageDraw.Draw(img, "RGBA")

    for name, rr in page_result.page_metrics.ranges.items():
        color = _get_color(color_overrides, _color_key(rr.role.value))
        x0 = rr.min_x0 * scale
        # Widen single-value bands so they remain visible.
        x1 = max(rr.max_x0 * scale, x0 + 2)
        draw.rectangle((x0, 0, x1, img_h), fill=(*color[:3], BAND_ALPHA))
        _draw_label(draw, x0, 20 * scale + 16, name, color, scale)

    for a in page_result.assignments:
        if a.bbox is None:
            continue
        key = _color_key(a.label)
        color = _get_color(color_overrides, key)
        x0, y0, x1, y1 = _scale_box(a.bbox.bbox(), scale)
        draw.rectangle((x0, y0, x1, y1), outline=color, width=2)
        _draw_label(draw, x0, y0, f"{LABEL_PREFIXES[key]}{a.line_index}", color, scale)

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    img.convert("RGB").save(out_path)
    return out_path
