"""Spatial CTA-to-form association.

A CTA counts as form-related when its box, scaled from capture (screenshot)
space into display space, overlaps a form box or sits within the proximity
threshold of one:

    threshold = (max(form w, h) + max(cta w, h)) / 2 + 50
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from .helpers import round_half_up
from .models import BoundingBox, Size

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_SIZE = Size(width=800, height=600)
DEFAULT_CTA_WIDTH = 100
DEFAULT_CTA_HEIGHT = 30
PROXIMITY_BUFFER = 50


def scale_box(box: BoundingBox, image_size: Size, display_size: Size) -> BoundingBox:
    """Map a capture-space box into display space (whole pixels)."""
    scale_x = display_size.width / image_size.width
    scale_y = display_size.height / image_size.height
    return BoundingBox(
        x=round_half_up(box.x * scale_x),
        y=round_half_up(box.y * scale_y),
        width=round_half_up(box.width * scale_x),
        height=round_half_up(box.height * scale_y),
    )


def _overlap(a: BoundingBox, b: BoundingBox) -> float:
    x_overlap = max(0.0, min(a.right, b.right) - max(a.x, b.x))
    y_overlap = max(0.0, min(a.bottom, b.bottom) - max(a.y, b.y))
    return x_overlap * y_overlap


def _center_distance(a: BoundingBox, b: BoundingBox) -> float:
    (ax, ay), (bx, by) = a.center, b.center
    return math.hypot(ax - bx, ay - by)


def proximity_threshold(form: BoundingBox, cta: BoundingBox) -> float:
    return (max(form.width, form.height) + max(cta.width, cta.height)) / 2 + PROXIMITY_BUFFER


def is_cta_within_form_boundary(
    cta_box: BoundingBox,
    form_boxes: Sequence[BoundingBox],
    image_size: Size,
    display_size: Size = DEFAULT_DISPLAY_SIZE,
) -> bool:
    """True when the CTA overlaps, or sits close to, any of the form boxes.

    Both CTA and form boxes are given in capture space; a zero-sized capture
    image makes the relationship undecidable and yields False.
    """
    if not form_boxes:
        logger.debug("Form detection: no form boundaries available")
        return False
    if image_size.width == 0 or image_size.height == 0:
        logger.debug("Form detection: invalid image size")
        return False

    cta_box = cta_box.model_copy(update={
        "width": cta_box.width or DEFAULT_CTA_WIDTH,
        "height": cta_box.height or DEFAULT_CTA_HEIGHT,
    })
    cta = scale_box(cta_box, image_size, display_size)
    for index, form_box in enumerate(form_boxes, start=1):
        form = scale_box(form_box, image_size, display_size)

        if _overlap(cta, form) > 0:
            logger.debug(f"Form detection: CTA overlaps form {index}")
            return True

        distance = _center_distance(cta, form)
        threshold = proximity_threshold(form, cta)
        if distance <= threshold:
            logger.debug(
                f"Form detection: CTA near form {index} ({distance:.1f}px <= {threshold:.1f}px)"
            )
            return True

    return False


def determine_is_form_related(
    cta_box: Optional[BoundingBox],
    form_boxes: Sequence[BoundingBox],
    image_size: Size,
    display_size: Optional[Size] = None,
) -> bool:
    if cta_box is None or not form_boxes:
        return False
    return is_cta_within_form_boundary(cta_box, form_boxes, image_size, display_size or DEFAULT_DISPLAY_SIZE)
