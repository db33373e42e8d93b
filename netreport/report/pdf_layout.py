"""Page layout for the report PDF: geometry helpers and pagination.

Layout runs before anything is drawn.  Every block knows its height up
front, so :func:`paginate` can assign blocks to physical pages and the
renderer knows the exact page count when it stamps the first footer.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

DrawFn = Callable[[Any, float], None]
"""``draw(canvas, y_top)``; x placement is the block's own business."""


@dataclass(slots=True)
class Block:
    height: float
    draw: DrawFn


@dataclass(slots=True)
class Section:
    """A run of blocks that starts on a fresh page.

    ``continuation`` builds the header repeated at the top of each
    overflow page.
    """

    name: str
    blocks: list[Block]
    continuation: Callable[[], Block] | None = None


@dataclass(slots=True)
class PlacedBlock:
    block: Block
    y_top: float


def paginate(
    sections: Sequence[Section],
    *,
    top: float,
    bottom: float,
    gap: float,
) -> list[list[PlacedBlock]]:
    """Assign blocks to pages top-down; returns one list of placements per page.

    Blocks never split.  A block taller than the whole frame is still
    placed, alone, at the top of its page.
    """
    pages: list[list[PlacedBlock]] = []
    for section in sections:
        if not section.blocks:
            continue
        page: list[PlacedBlock] = []
        pages.append(page)
        y = top
        for block in section.blocks:
            if page and y - block.height < bottom:
                page = []
                pages.append(page)
                y = top
                if section.continuation is not None:
                    header = section.continuation()
                    page.append(PlacedBlock(header, y))
                    y -= header.height + gap
            page.append(PlacedBlock(block, y))
            y -= block.height + gap
    return pages


def fit_rect_preserve_aspect(
    src_w: float,
    src_h: float,
    box_x: float,
    box_y: float,
    box_w: float,
    box_h: float,
) -> tuple[float, float, float, float]:
    """Return (x, y, w, h) fitted inside box while preserving src aspect."""
    if src_w <= 0 or src_h <= 0:
        return box_x, box_y, box_w, box_h
    src_ratio = src_w / src_h
    box_ratio = box_w / box_h if box_h else src_ratio
    if box_ratio > src_ratio:
        h = box_h
        w = h * src_ratio
        x = box_x + (box_w - w) / 2
        y = box_y
    else:
        w = box_w
        h = w / src_ratio
        x = box_x
        y = box_y + (box_h - h) / 2
    return x, y, w, h
