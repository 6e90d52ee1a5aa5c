# minglz/services/page_converter.py
"""
Pure conversion between the page builder's editor state and the relational
(landing page, page content) records. No I/O.
"""
from __future__ import annotations

from typing import Iterable, Mapping

from minglz.schemas.landing_pages import (
    EditorState,
    FieldContent,
    FlatEditorState,
    LandingPageRecord,
    PageContentRecord,
    PageSelection,
)

PAGE_SLOTS = (1, 2, 3, 4, 5)
DEFAULT_BACKGROUND = "#000000"

COVER_DEFAULT = PageSelection(page_type="표지", template_type="유형1")
OTHER_DEFAULT = PageSelection(page_type="기타", template_type="유형1")

COLOR_SUFFIX = "Color"
VISIBLE_SUFFIX = "Visible"


def _default_selection(page_number: int) -> PageSelection:
    return COVER_DEFAULT if page_number == 1 else OTHER_DEFAULT


def to_relational(state: EditorState) -> list[LandingPageRecord]:
    """Always emits exactly five pages; fields without a value are dropped."""
    result: list[LandingPageRecord] = []

    for page_number in PAGE_SLOTS:
        selection = state.page_selections.get(page_number)
        background = state.page_background_colors.get(page_number) or DEFAULT_BACKGROUND

        if selection is None:
            fallback = _default_selection(page_number)
            result.append(
                LandingPageRecord(
                    page_number=page_number,
                    page_type=fallback.page_type,
                    template_type=fallback.template_type,
                    background_color=background,
                    contents=[],
                )
            )
            continue

        contents = [
            PageContentRecord(
                field_id=field_id,
                field_value=field.value,
                field_color=field.color,
                is_visible=field.visible,
            )
            for field_id, field in state.fields.get(page_number, {}).items()
            if field.value
        ]

        result.append(
            LandingPageRecord(
                page_number=page_number,
                page_type=selection.page_type,
                template_type=selection.template_type,
                background_color=background,
                contents=contents,
            )
        )

    return result


def to_editor_state(records: Iterable[LandingPageRecord]) -> EditorState:
    state = EditorState()

    for index, page in enumerate(records):
        page_number = page.page_number or index + 1

        state.page_selections[page_number] = PageSelection(
            page_type=page.page_type,
            template_type=page.template_type,
        )
        state.page_background_colors[page_number] = page.background_color or DEFAULT_BACKGROUND

        page_fields = {
            c.field_id: FieldContent(value=c.field_value, color=c.field_color, visible=c.is_visible)
            for c in page.contents
        }
        if page_fields:
            state.fields[page_number] = page_fields

    return state


# ---------------------------------------------------------------------------
# Flat "designValues" maps ({field}, {field}Color, {field}Visible) still sent
# by older builder clients.
# ---------------------------------------------------------------------------
def _base_field_id(key: str) -> str:
    if key.endswith(COLOR_SUFFIX):
        return key[: -len(COLOR_SUFFIX)]
    if key.endswith(VISIBLE_SUFFIX):
        return key[: -len(VISIBLE_SUFFIX)]
    return key


def fields_from_flat(design_values: Mapping[str, str]) -> dict[str, FieldContent]:
    fields: dict[str, FieldContent] = {}
    for key in design_values:
        field_id = _base_field_id(key)
        if not field_id or field_id in fields:
            continue
        fields[field_id] = FieldContent(
            value=design_values.get(field_id) or None,
            color=design_values.get(f"{field_id}{COLOR_SUFFIX}") or None,
            visible=design_values.get(f"{field_id}{VISIBLE_SUFFIX}") != "false",
        )
    return fields


def fields_to_flat(fields: Mapping[str, FieldContent]) -> dict[str, str]:
    flat: dict[str, str] = {}
    for field_id, field in fields.items():
        if field.value is not None:
            flat[field_id] = field.value
        if field.color is not None:
            flat[f"{field_id}{COLOR_SUFFIX}"] = field.color
        flat[f"{field_id}{VISIBLE_SUFFIX}"] = "true" if field.visible else "false"
    return flat


def from_flat_state(flat: FlatEditorState) -> EditorState:
    return EditorState(
        page_selections=dict(flat.page_selections),
        page_background_colors=dict(flat.page_background_colors),
        fields={page: fields_from_flat(values) for page, values in flat.design_values.items()},
    )


def to_flat_state(state: EditorState) -> FlatEditorState:
    return FlatEditorState(
        page_selections=dict(state.page_selections),
        page_background_colors=dict(state.page_background_colors),
        design_values={page: fields_to_flat(fields) for page, fields in state.fields.items()},
    )
