from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Any, Iterable

from formbuilder.core.layout_model import default_value
from formbuilder.schemas.layout import FieldType, FormField, FormRow


@dataclass(frozen=True)
class Widget:
    kind: str  # input | textarea | select | radio_group | checkbox_group | ...
    input_type: str | None = None  # html <input type>, when kind == "input"
    uses_options: bool = False
    multi_valued: bool = False


TEXT_WIDGET = Widget(kind="input", input_type="text")

# One table for every consumer; adding a field type is a single entry here.
WIDGETS: dict[str, Widget] = {
    FieldType.TEXT.value: TEXT_WIDGET,
    FieldType.EMAIL.value: Widget(kind="input", input_type="email"),
    FieldType.NUMBER.value: Widget(kind="input", input_type="number"),
    FieldType.TEXTAREA.value: Widget(kind="textarea"),
    FieldType.SELECT.value: Widget(kind="select", uses_options=True),
    FieldType.RADIO.value: Widget(kind="radio_group", uses_options=True),
    FieldType.CHECKBOX.value: Widget(kind="checkbox_group", uses_options=True, multi_valued=True),
    FieldType.PHONE.value: Widget(kind="input", input_type="tel"),
    FieldType.DATE.value: Widget(kind="input", input_type="date"),
    FieldType.TIME.value: Widget(kind="input", input_type="time"),
    FieldType.RATING.value: Widget(kind="rating"),
    FieldType.FILE.value: Widget(kind="input", input_type="file"),
    FieldType.ADDRESS.value: Widget(kind="address"),
    FieldType.RANGE.value: Widget(kind="input", input_type="range"),
    FieldType.TOGGLE.value: Widget(kind="toggle"),
}


def widget_for(field_type: str) -> Widget:
    return WIDGETS.get(field_type, TEXT_WIDGET)


@dataclass
class ColumnView:
    index: int
    fields: list[FormField] = dc_field(default_factory=list)


@dataclass
class RowView:
    row: FormRow
    columns: list[ColumnView]


@dataclass
class LayoutView:
    rows: list[RowView]
    # set when there are no rows: render fields top to bottom
    flat_fields: list[FormField] | None = None

    @property
    def is_flat(self) -> bool:
        return self.flat_fields is not None


def group_layout(fields: Iterable[FormField], rows: Iterable[FormRow] | None) -> LayoutView:
    """
    Rows sorted by order; each row yields every column 0..columns-1 (empty
    ones included) with its fields in insertion order. Fields that do not
    resolve to a row/column slot are left out. No rows means a flat list.
    """
    fields = list(fields)
    rows = list(rows or [])
    if not rows:
        return LayoutView(rows=[], flat_fields=fields)

    slots: dict[str, dict[int, list[FormField]]] = {}
    for f in fields:
        if f.row_id is None or f.column_index is None:
            continue
        slots.setdefault(f.row_id, {}).setdefault(f.column_index, []).append(f)

    out: list[RowView] = []
    for row in sorted(rows, key=lambda r: r.order):
        by_col = slots.get(row.id, {})
        out.append(
            RowView(
                row=row,
                columns=[ColumnView(index=i, fields=list(by_col.get(i, []))) for i in range(row.columns)],
            )
        )
    return LayoutView(rows=out)


def grouping_signature(view: LayoutView) -> list[Any]:
    if view.is_flat:
        return [f.id for f in view.flat_fields]
    return [(rv.row.id, [[f.id for f in col.fields] for col in rv.columns]) for rv in view.rows]


def unplaced_fields(fields: Iterable[FormField], view: LayoutView) -> list[FormField]:
    if view.is_flat:
        return []
    placed = {f.id for rv in view.rows for col in rv.columns for f in col.fields}
    return [f for f in fields if f.id not in placed]


def visible_fields(fields: Iterable[FormField], rows: Iterable[FormRow] | None) -> list[FormField]:
    """Fields a rendered form actually shows, in display order."""
    view = group_layout(fields, rows)
    if view.is_flat:
        return list(view.flat_fields)
    return [f for rv in view.rows for col in rv.columns for f in col.fields]


# ---- shared field projection ----


def _field_props(f: FormField) -> dict[str, Any]:
    w = widget_for(f.type)
    props: dict[str, Any] = {
        "id": f.id,
        "type": f.type,
        "widget": w.kind,
        "inputType": w.input_type,
        "label": f.label,
        "placeholder": f.placeholder,
        "required": f.required,
        "width": f.width,
    }
    if w.uses_options:
        props["options"] = list(f.options or [])
    if w.multi_valued:
        props["multiple"] = True
    return props


def _project(view: LayoutView, render_field) -> dict[str, Any]:
    if view.is_flat:
        return {"layout": "flat", "rows": [], "fields": [render_field(f) for f in view.flat_fields]}
    return {
        "layout": "rows",
        "rows": [
            {
                "id": rv.row.id,
                "order": rv.row.order,
                "columns": [
                    {"index": col.index, "fields": [render_field(f) for f in col.fields]}
                    for col in rv.columns
                ],
            }
            for rv in view.rows
        ],
        "fields": [],
    }


# ---- adapters ----


def render_canvas(
    fields: Iterable[FormField],
    rows: Iterable[FormRow],
    theme_color: str,
    *,
    drag_session=None,
) -> dict[str, Any]:
    """Editable builder canvas: every column is a drop target."""
    fields = list(fields)
    view = group_layout(fields, rows)
    last = len(view.rows) - 1

    def _canvas_field(f: FormField) -> dict[str, Any]:
        props = _field_props(f)
        props["editable"] = True
        props["columnIndex"] = f.column_index
        props["dragging"] = bool(drag_session and drag_session.dragged_field_id == f.id)
        return props

    out = _project(view, _canvas_field)
    for pos, (rv, row_out) in enumerate(zip(view.rows, out["rows"])):
        row_out["canMoveUp"] = pos > 0
        row_out["canMoveDown"] = pos < last
        row_out["columnCount"] = rv.row.columns
        for col_out in row_out["columns"]:
            col_out["dropTarget"] = {"rowId": rv.row.id, "columnIndex": col_out["index"]}
            col_out["highlighted"] = bool(drag_session and drag_session.is_hovering(rv.row.id, col_out["index"]))
            col_out["isEmpty"] = not col_out["fields"]

    out["mode"] = "canvas"
    out["themeColor"] = theme_color
    out["unplaced"] = [_canvas_field(f) for f in unplaced_fields(fields, view)]
    return out


def render_preview(
    fields: Iterable[FormField],
    rows: Iterable[FormRow],
    theme_color: str,
    *,
    title: str = "",
    description: str | None = None,
) -> dict[str, Any]:
    """Read-only live preview pane."""

    def _preview_field(f: FormField) -> dict[str, Any]:
        props = _field_props(f)
        props["disabled"] = True
        return props

    out = _project(group_layout(fields, rows), _preview_field)
    out.update({"mode": "preview", "title": title, "description": description, "themeColor": theme_color})
    return out


def render_public_form(
    *,
    title: str,
    description: str | None,
    fields: Iterable[FormField],
    rows: Iterable[FormRow],
    theme_color: str,
    share_id: str | None = None,
) -> dict[str, Any]:
    """Fillable public form with initial values for every field."""

    def _public_field(f: FormField) -> dict[str, Any]:
        props = _field_props(f)
        props["name"] = f.id
        props["defaultValue"] = default_value(f)
        return props

    out = _project(group_layout(fields, rows), _public_field)
    out.update(
        {
            "mode": "public",
            "title": title,
            "description": description,
            "themeColor": theme_color,
            "shareId": share_id,
        }
    )
    return out


def rendered_grouping(rendered: dict[str, Any]) -> list[Any]:
    """Row/column/field-id grouping of any adapter output, for comparisons."""
    if rendered["layout"] == "flat":
        return [f["id"] for f in rendered["fields"]]
    return [(r["id"], [[f["id"] for f in c["fields"]] for c in r["columns"]]) for r in rendered["rows"]]
