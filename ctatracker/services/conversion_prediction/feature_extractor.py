"""
Feature Extractor - raw capture records to canonical PageElement variants.

The capture layer reports buttons, links, forms and form fields in loosely
typed shapes. Each kind has one converter producing its PageElement variant;
``is_above_fold`` is always derived from the element's box and the fold line,
and every attribute the converter had to invent is listed in
``defaulted_fields`` so confidence can degrade.

Usage:
    from ctatracker.services.conversion_prediction import extract_page_elements, build_page_context

    elements = extract_page_elements(snapshot.dom, 1000)
    context = build_page_context(snapshot.dom, device="mobile", total_impressions=5000)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from .constants import DEVICE_VIEWPORTS
from .helpers import _safe_numeric, contains_any, round_half_up
from .models import (
    BoundingBox,
    ButtonElement,
    DeviceType,
    DomButton,
    DomForm,
    DomFormField,
    DomLink,
    DomSnapshot,
    FieldElement,
    FormElement,
    LinkElement,
    PageContext,
)

logger = logging.getLogger(__name__)

FIELD_DEDUP_GRID = 50

# (needles, label); first match on the field name wins
NAME_LABELS: List[Tuple[Tuple[str, ...], str]] = [
    (("first", "fname"), "First Name Field"),
    (("last", "lname"), "Last Name Field"),
    (("email",), "Email Field"),
    (("phone", "tel"), "Phone Field"),
    (("company", "organization"), "Company Field"),
    (("country",), "Country Field"),
    (("message", "description"), "Message Field"),
    (("job", "title"), "Job Title Field"),
    (("privacy", "optin"), "Privacy Consent"),
]

PLACEHOLDER_LABELS: List[Tuple[Tuple[str, ...], str]] = [
    (("first name",), "First Name Field"),
    (("last name",), "Last Name Field"),
    (("email",), "Email Field"),
    (("phone",), "Phone Field"),
    (("company",), "Company Field"),
]

TRUST_BADGE_ALT = ["badge", "secure", "certified", "verified", "trust"]
TESTIMONIAL_HEADINGS = ["testimonial", "review", "what our customers", "trusted by"]


# ============================================================================
# Shared Helpers
# ============================================================================

def _box(coordinates: Optional[BoundingBox], defaulted: List[str]) -> BoundingBox:
    if coordinates is None:
        defaulted.append("coordinates")
        return BoundingBox()
    return coordinates


def _text(text: Optional[str], defaulted: List[str], default: str = "") -> str:
    if text is None or not text.strip():
        defaulted.append("text")
        return default
    return text.strip()


def _distance(distance: Optional[float], box: BoundingBox) -> float:
    return distance if distance is not None else box.y


def _element_id(prefix: str, box: BoundingBox, suffix: str = "") -> str:
    base = f"{prefix}-{int(box.x)}-{int(box.y)}"
    return f"{base}-{suffix}" if suffix else base


def _optional_int(value: Any) -> Optional[int]:
    number = _safe_numeric(value)
    return int(number) if number is not None else None


def field_label(field: DomFormField) -> str:
    """Human-readable label ("Email Field", "First Name Field", ...)."""
    attributes = field.attributes
    name = field.name or attributes.get("name", "")
    placeholder = attributes.get("placeholder", "")
    label = placeholder or name or attributes.get("id") or f"{field.type or 'text'} field"

    lowered = name.lower()
    for needles, candidate in NAME_LABELS:
        if any(needle in lowered for needle in needles):
            label = candidate
            break

    if placeholder and "Field" not in label:
        for needles, candidate in PLACEHOLDER_LABELS:
            if contains_any(placeholder, needles):
                label = candidate
                break

    return label


# ============================================================================
# Converters
# ============================================================================

def button_from_record(button: DomButton, fold_line: int) -> ButtonElement:
    defaulted: List[str] = []
    box = _box(button.coordinates, defaulted)
    if button.type is None:
        defaulted.append("type")
    return ButtonElement(
        id=button.id or _element_id("button", box),
        tag_name="button",
        text=_text(button.text, defaulted),
        class_name=button.class_name,
        bounds=box,
        is_visible=button.is_visible,
        is_above_fold=box.y < fold_line,
        distance_from_top=_distance(button.distance_from_top, box),
        is_interactive=True,
        has_button_styling=True,
        is_sticky=contains_any(button.class_name, ["sticky", "fixed"]),
        button_type=button.type or "button",
        form_action=button.form_action,
        href=button.href,
        defaulted_fields=defaulted,
    )


def link_from_record(link: DomLink, fold_line: int) -> LinkElement:
    defaulted: List[str] = []
    box = _box(link.coordinates, defaulted)
    return LinkElement(
        id=link.id or _element_id("link", box),
        tag_name="a",
        text=_text(link.text, defaulted),
        class_name=link.class_name,
        bounds=box,
        is_visible=link.is_visible,
        is_above_fold=box.y < fold_line,
        distance_from_top=_distance(link.distance_from_top, box),
        is_interactive=True,
        has_button_styling=link.has_button_styling,
        is_sticky=contains_any(link.class_name, ["sticky", "fixed"]),
        href=link.href,
        defaulted_fields=defaulted,
    )


def form_from_record(form: DomForm, fold_line: int) -> FormElement:
    defaulted: List[str] = []
    box = _box(form.coordinates, defaulted)
    return FormElement(
        id=_element_id("form", box),
        tag_name="form",
        text=_text(form.submit_button_text, defaulted, default="Submit"),
        bounds=box,
        is_visible=True,
        is_above_fold=box.y < fold_line,
        distance_from_top=_distance(form.distance_from_top, box),
        is_interactive=True,
        has_button_styling=form.has_submit_button,
        form_action=form.action,
        method=form.method,
        field_count=len(form.inputs),
        has_submit_button=form.has_submit_button,
    )


def field_from_record(field: DomFormField, fold_line: int) -> FieldElement:
    defaulted: List[str] = []
    box = _box(field.coordinates, defaulted)
    if field.type is None:
        defaulted.append("type")
    input_type = field.type or "text"
    attributes = field.attributes
    label = field_label(field)

    if input_type in ("textarea", "select"):
        tag_name = input_type
    else:
        tag_name = "input"

    return FieldElement(
        id=_element_id("field", box, input_type),
        tag_name=tag_name,
        text=label,
        class_name=attributes.get("class", attributes.get("className", "")),
        bounds=box,
        is_visible=True,
        is_above_fold=box.y < fold_line,
        distance_from_top=box.y,
        is_interactive=True,
        input_type=input_type,
        name=field.name or attributes.get("name", ""),
        required=field.required,
        label=label,
        placeholder=attributes.get("placeholder", ""),
        has_autocomplete=bool(attributes.get("autocomplete")),
        pattern=attributes.get("pattern"),
        min_length=_optional_int(attributes.get("minlength")),
        max_length=_optional_int(attributes.get("maxlength")),
        defaulted_fields=defaulted,
    )


_CONVERTERS: Dict[str, Tuple[type, Callable]] = {
    "button": (DomButton, button_from_record),
    "link": (DomLink, link_from_record),
    "form": (DomForm, form_from_record),
    "field": (DomFormField, field_from_record),
}


def normalize_element(record: Dict[str, Any], fold_line: int):
    """Convert one raw record, tagged with ``kind``, into its PageElement variant.

    Raises:
        ValueError: If ``kind`` is missing or not one of button, link, form, field.
    """
    kind = record.get("kind")
    if kind not in _CONVERTERS:
        raise ValueError(f"Unknown element kind: {kind!r}")

    record_model, converter = _CONVERTERS[kind]
    fields = {k: v for k, v in record.items() if k != "kind"}
    return converter(record_model.model_validate(fields), fold_line)


def derive_fold(element, fold_line: int):
    """Element with ``is_above_fold`` recomputed from its box and ``fold_line``."""
    above = element.bounds.y < fold_line
    if element.is_above_fold == above:
        return element
    return element.model_copy(update={"is_above_fold": above})


# ============================================================================
# Page Extraction
# ============================================================================

def deduplicate_form_fields(fields: List[DomFormField]) -> List[DomFormField]:
    """Drop fields repeating an earlier (name, type), or its position on a 50px grid."""
    unique = []
    seen: Set[str] = set()
    for field in fields:
        name = field.name or field.attributes.get("name") or field.attributes.get("id") or ""
        input_type = field.type or "text"
        box = field.coordinates or BoundingBox()
        grid_x = round_half_up(box.x / FIELD_DEDUP_GRID) * FIELD_DEDUP_GRID
        grid_y = round_half_up(box.y / FIELD_DEDUP_GRID) * FIELD_DEDUP_GRID

        position_key = f"{name}-{input_type}-{grid_x}-{grid_y}"
        name_key = f"{name}-{input_type}"
        if position_key in seen or name_key in seen:
            continue
        unique.append(field)
        seen.update((position_key, name_key))
    return unique


def _unique(element, seen_ids: Set[str]):
    element_id = element.id
    suffix = 2
    while element_id in seen_ids:
        element_id = f"{element.id}-{suffix}"
        suffix += 1
    seen_ids.add(element_id)
    if element_id != element.id:
        element = element.model_copy(update={"id": element_id})
    return element


def _fold_line(context_or_fold_line: Union[PageContext, int, None], dom: DomSnapshot) -> int:
    if isinstance(context_or_fold_line, PageContext):
        return context_or_fold_line.fold_line
    if context_or_fold_line is not None:
        return int(context_or_fold_line)
    return dom.fold_line or DEVICE_VIEWPORTS[DeviceType.DESKTOP.value]["fold_line"]


def extract_page_elements(
    raw: Union[DomSnapshot, Dict[str, Any]],
    context_or_fold_line: Union[PageContext, int, None] = None,
) -> List:
    """Convert a capture's DOM data into PageElements with unique ids.

    Invisible or text-less buttons and links are skipped, form fields are
    deduplicated, and fields without a positive box are dropped.
    """
    dom = raw if isinstance(raw, DomSnapshot) else DomSnapshot.model_validate(raw)
    fold_line = _fold_line(context_or_fold_line, dom)

    elements = []
    for button in dom.buttons:
        if button.is_visible and button.text and button.text.strip():
            elements.append(button_from_record(button, fold_line))
    for link in dom.links:
        if link.is_visible and link.text and link.text.strip():
            elements.append(link_from_record(link, fold_line))
    for form in dom.forms:
        elements.append(form_from_record(form, fold_line))

    unique_fields = deduplicate_form_fields(dom.form_fields)
    for field in unique_fields:
        if field.coordinates is not None and field.coordinates.has_area():
            elements.append(field_from_record(field, fold_line))

    seen_ids: Set[str] = set()
    elements = [_unique(element, seen_ids) for element in elements]

    logger.info(
        f"Extracted {len(elements)} elements from {dom.url or 'capture'} "
        f"({len(dom.form_fields) - len(unique_fields)} duplicate form fields removed)"
    )
    return elements


def build_page_context(
    dom: Union[DomSnapshot, Dict[str, Any]],
    device: Union[DeviceType, str] = DeviceType.DESKTOP,
    **overrides: Any,
) -> PageContext:
    """Page context for a capture: device viewport, trust signals and extracted elements.

    Keyword overrides win over every derived value.
    """
    dom = dom if isinstance(dom, DomSnapshot) else DomSnapshot.model_validate(dom)
    device = DeviceType(device)
    fold_line = overrides.get("fold_line") or dom.fold_line or DEVICE_VIEWPORTS[device.value]["fold_line"]
    url = overrides.get("url", dom.url)

    values: Dict[str, Any] = {
        "url": url,
        "fold_line": fold_line,
        "has_ssl": url.startswith("https://") if url else True,
        "has_trust_badges": any(contains_any(image.alt, TRUST_BADGE_ALT) for image in dom.images),
        "has_testimonials": any(contains_any(h.text, TESTIMONIAL_HEADINGS) for h in dom.headings),
        "elements": extract_page_elements(dom, fold_line),
    }
    values.update(overrides)
    return PageContext.for_device(device, **values)
