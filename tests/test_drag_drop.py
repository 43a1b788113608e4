from formbuilder.core.layout_engine import DragSession, DropPayload, FormLayout, resolve_drop
from tests.helpers import field, two_row_layout


def test_palette_drop_adds_field():
    layout = two_row_layout()
    result = resolve_drop(layout, DropPayload(field_type="radio"), "r2", 0)
    assert result.action == "added"
    assert result.field.type == "radio"
    assert (result.field.row_id, result.field.column_index) == ("r2", 0)
    assert len(layout.fields) == 5


def test_existing_field_drop_relocates_without_adding():
    layout = two_row_layout()
    result = resolve_drop(layout, DropPayload(field_id="a"), "r2", 0)
    assert result.action == "moved"
    assert len(layout.fields) == 4
    assert (layout.get_field("a").row_id, layout.get_field("a").column_index) == ("r2", 0)
    assert result.details == {"from": ["r1", 0], "to": ["r2", 0]}


def test_payload_with_both_kinds_is_only_a_move():
    layout = two_row_layout()
    result = resolve_drop(layout, DropPayload(field_type="text", field_id="b"), "r1", 0)
    assert result.action == "moved"
    assert len(layout.fields) == 4


def test_drop_on_same_slot_is_noop():
    layout = two_row_layout()
    result = resolve_drop(layout, DropPayload(field_id="c"), "r2", 1)
    assert result.action == "noop"
    assert result.reason == "unchanged"


def test_invalid_targets_are_noops():
    layout = two_row_layout()
    before = [f.model_copy() for f in layout.fields]

    assert resolve_drop(layout, DropPayload(field_type="text"), "ghost", 0).reason == "unknown_row"
    assert resolve_drop(layout, DropPayload(field_type="text"), "r1", 1).reason == "invalid_column"
    assert resolve_drop(layout, DropPayload(field_id="ghost"), "r1", 0).reason == "unknown_field"
    assert resolve_drop(layout, DropPayload(field_type="hologram"), "r1", 0).reason == "unknown_field_type"
    assert resolve_drop(layout, DropPayload(), "r1", 0).reason == "empty_payload"

    assert layout.fields == before


def test_session_supplies_dragged_field_and_is_cleared():
    layout = two_row_layout()
    session = DragSession()
    session.start("d")
    session.drag_over("r1", 0)
    assert session.is_hovering("r1", 0)

    result = resolve_drop(layout, DropPayload(), "r1", 0, session=session)
    assert result.action == "moved"
    assert layout.get_field("d").row_id == "r1"
    assert session.dragged_field_id is None
    assert session.hover_row_id is None


def test_hover_does_not_mutate_layout():
    layout = two_row_layout()
    session = DragSession()
    session.start("a")
    session.drag_over("r2", 1)
    session.drag_leave()
    session.end()
    assert layout.get_field("a").row_id == "r1"
    assert not session.is_hovering("r2", 1)


def test_payload_from_transfer_data():
    p = DropPayload.from_transfer({"application/x-field-type": "date"})
    assert (p.field_type, p.field_id) == ("date", None)

    p = DropPayload.from_transfer({"application/x-field-id": "abc", "text/plain": "abc"})
    assert (p.field_type, p.field_id) == (None, "abc")

    # text/plain alone is kept aside until the drop sees the layout
    p = DropPayload.from_transfer({"text/plain": "abc"})
    assert (p.field_type, p.field_id, p.plain) == (None, None, "abc")

    p = DropPayload.from_transfer({})
    assert (p.field_type, p.field_id) == (None, None)


def test_plain_text_palette_drop_adds_field():
    """Palette items that only set text/plain carry the field type"""
    layout = FormLayout.new()
    target = layout.rows[0]
    result = resolve_drop(layout, DropPayload.from_transfer({"text/plain": "email"}), target.id, 0)
    assert result.action == "added"
    assert result.field.type == "email"
    assert [f.id for f in layout.fields_in(target.id, 0)] == [result.field.id]


def test_plain_text_canvas_drop_moves_field():
    layout = two_row_layout()
    result = resolve_drop(layout, DropPayload.from_transfer({"text/plain": "a"}), "r2", 0)
    assert result.action == "moved"
    assert layout.get_field("a").row_id == "r2"
    assert len(layout.fields) == 4


def test_plain_text_prefers_existing_field_id_over_type_name():
    layout = two_row_layout()
    layout.fields.append(field("email", row_id="r1", column_index=0))
    result = resolve_drop(layout, DropPayload.from_transfer({"text/plain": "email"}), "r2", 1)
    assert result.action == "moved"
    assert result.field.id == "email"
    assert len(layout.fields) == 5


def test_plain_text_unknown_value_is_noop():
    layout = two_row_layout()
    result = resolve_drop(layout, DropPayload.from_transfer({"text/plain": "hologram"}), "r1", 0)
    assert result.action == "noop"
    assert result.reason == "unknown_field"
    assert len(layout.fields) == 4
