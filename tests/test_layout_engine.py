from formbuilder.core.layout_engine import FormLayout
from formbuilder.core.layout_model import DEFAULT_CHOICE_OPTIONS
from formbuilder.schemas.layout import FieldType
from tests.helpers import field, row, two_row_layout


def _assert_column_invariant(layout: FormLayout):
    rows = {r.id: r for r in layout.rows}
    for f in layout.fields:
        if f.row_id is not None and f.row_id in rows:
            assert 0 <= f.column_index < rows[f.row_id].columns


def test_new_layout_has_one_default_row():
    layout = FormLayout.new()
    assert len(layout.rows) == 1
    assert layout.rows[0].columns == 1
    assert layout.fields == []


def test_add_field_targets_row_and_column():
    layout = FormLayout.new()
    r2 = layout.add_row(columns=3)
    f = layout.add_field("text", r2.id, 2)
    assert f.row_id == r2.id
    assert f.column_index == 2
    assert layout.fields == [f]


def test_add_field_without_row_falls_back_to_first_row_first_column():
    layout = two_row_layout()
    f = layout.add_field("textarea")
    assert f.row_id == "r1"  # lowest order, not list position
    assert f.column_index == 0


def test_add_field_unknown_row_falls_back_to_first_row():
    layout = two_row_layout()
    f = layout.add_field("text", "nope", 3)
    assert (f.row_id, f.column_index) == ("r1", 0)


def test_add_field_with_no_rows_creates_one():
    layout = FormLayout()
    f = layout.add_field("text")
    assert len(layout.rows) == 1
    assert f.row_id == layout.rows[0].id


def test_add_field_clamps_column():
    layout = two_row_layout()
    f = layout.add_field("text", "r2", 7)
    assert f.column_index == 1
    _assert_column_invariant(layout)


def test_update_field_merges_attributes():
    layout = two_row_layout()
    updated = layout.update_field("a", {"label": "Name", "required": True, "placeholder": "Your name"})
    assert updated.label == "Name"
    assert updated.required is True
    assert layout.get_field("a").placeholder == "Your name"
    assert layout.get_field("a").row_id == "r1"


def test_update_field_accepts_camel_case_keys_and_ignores_id():
    layout = two_row_layout()
    updated = layout.update_field("a", {"rowId": "r2", "columnIndex": 1, "id": "hijack"})
    assert updated.id == "a"
    assert (updated.row_id, updated.column_index) == ("r2", 1)


def test_move_stacks_in_insertion_order_without_reflow():
    layout = two_row_layout()
    layout.update_field("a", {"row_id": "r2", "column_index": 1})
    col = layout.fields_in("r2", 1)
    # a was first in the list, so it stacks above c and d
    assert [f.id for f in col] == ["a", "c", "d"]
    assert [f.id for f in layout.fields_in("r2", 0)] == ["b"]


def test_move_to_unknown_row_is_ignored():
    layout = two_row_layout()
    layout.update_field("b", {"row_id": "missing", "column_index": 0})
    assert layout.get_field("b").row_id == "r2"


def test_move_clamps_column_to_target_row():
    layout = two_row_layout()
    moved = layout.update_field("c", {"row_id": "r1", "column_index": 1})
    assert (moved.row_id, moved.column_index) == ("r1", 0)
    _assert_column_invariant(layout)


def test_update_field_clamps_width():
    layout = two_row_layout()
    assert layout.update_field("a", {"width": 9}).width == 4
    assert layout.update_field("a", {"width": 0}).width == 1


def test_update_unknown_field_returns_none():
    assert two_row_layout().update_field("zzz", {"label": "x"}) is None


def test_remove_field_leaves_rows():
    layout = two_row_layout()
    assert layout.remove_field("c") is True
    assert layout.get_field("c") is None
    assert len(layout.rows) == 2
    assert layout.remove_field("c") is False


def test_add_row_appends_after_max_order():
    layout = FormLayout(rows=[row("x", 5), row("y", 2)])
    r = layout.add_row()
    assert r.order == 6
    assert r.columns == 1


def test_add_row_to_empty_layout_starts_at_zero():
    assert FormLayout().add_row().order == 0


def test_shrinking_row_clamps_fields():
    layout = FormLayout(rows=[row("r", 0, columns=4)])
    layout.fields = [field("f0", row_id="r", column_index=0), field("f3", row_id="r", column_index=3)]
    layout.update_row("r", {"columns": 2})
    assert layout.get_row("r").columns == 2
    assert layout.get_field("f3").column_index == 1
    assert layout.get_field("f0").column_index == 0
    _assert_column_invariant(layout)


def test_update_row_clamps_columns_range():
    layout = FormLayout(rows=[row("r", 0, columns=2)])
    assert layout.update_row("r", {"columns": 10}).columns == 4
    assert layout.update_row("r", {"columns": 0}).columns == 1


def test_remove_row_cascades_to_fields():
    layout = two_row_layout()
    assert layout.remove_row("r2") is True
    assert [r.id for r in layout.rows] == ["r1"]
    assert [f.id for f in layout.fields] == ["a"]
    assert all(f.row_id != "r2" for f in layout.fields)


def test_remove_unknown_row_is_noop():
    layout = two_row_layout()
    assert layout.remove_row("nope") is False
    assert len(layout.fields) == 4


def test_move_row_swaps_order_with_neighbour():
    layout = two_row_layout()
    assert layout.move_row("r2", "up") is True
    assert [r.id for r in layout.sorted_rows()] == ["r2", "r1"]
    assert layout.get_row("r2").order == 0
    assert layout.get_row("r1").order == 1


def test_move_row_noop_at_boundaries():
    layout = two_row_layout()
    assert layout.move_row("r1", "up") is False
    assert layout.move_row("r2", "down") is False
    assert [r.id for r in layout.sorted_rows()] == ["r1", "r2"]


def test_move_row_with_sparse_orders():
    layout = FormLayout(rows=[row("a", 0), row("b", 10), row("c", 20)])
    layout.move_row("c", "up")
    assert [r.id for r in layout.sorted_rows()] == ["a", "c", "b"]


def test_move_row_with_duplicate_orders():
    layout = FormLayout(rows=[row("a", 1), row("b", 1)])
    layout.move_row("b", "up")
    assert [r.id for r in layout.sorted_rows()] == ["b", "a"]


def test_scenario_add_row_drop_select_remove_row():
    layout = FormLayout.new()
    r2 = layout.add_row()
    layout.update_row(r2.id, {"columns": 2})
    assert len(layout.rows) == 2

    f = layout.add_field("select", r2.id, 1)
    assert f.row_id == r2.id
    assert f.column_index == 1
    assert f.options == ["Option 1", "Option 2", "Option 3"]

    before = len(layout.fields)
    layout.remove_row(r2.id)
    assert len(layout.fields) == before - 1
    assert len(layout.rows) == 1


def test_normalize_detaches_dangling_and_clamps():
    layout = FormLayout(
        fields=[field("x", row_id="ghost", column_index=0), field("y", row_id="r", column_index=3)],
        rows=[row("r", 0, columns=2)],
    )
    layout.normalize()
    assert layout.get_field("x").row_id is None
    assert layout.get_field("x").column_index is None
    assert layout.get_field("y").column_index == 1


def test_raw_round_trip():
    layout = two_row_layout()
    fields, rows = layout.to_raw()
    assert fields[0]["rowId"] == "r1"
    assert "columnIndex" in fields[0]
    again = FormLayout.from_raw(fields, rows)
    assert [f.id for f in again.fields] == ["a", "b", "c", "d"]
    assert again.get_field("c").options == ["x", "y"]


def test_update_field_ignores_null_for_required_attributes():
    layout = two_row_layout()
    f = layout.update_field("a", {"label": None, "required": None, "type": None, "width": None, "placeholder": None})
    assert f.label == "a"
    assert f.required is False
    assert f.type == "text"
    assert f.width == 1
    assert f.placeholder is None


def test_update_field_to_choice_type_seeds_options():
    layout = two_row_layout()
    f = layout.update_field("a", {"type": "radio"})
    assert f.options == DEFAULT_CHOICE_OPTIONS
    assert f.options is not DEFAULT_CHOICE_OPTIONS

    # existing options are kept
    f = layout.update_field("c", {"type": "checkbox"})
    assert f.options == ["x", "y"]


def test_update_field_accepts_enum_type():
    layout = two_row_layout()
    f = layout.update_field("a", {"type": FieldType.SELECT})
    assert f.type == "select"
    assert f.options == DEFAULT_CHOICE_OPTIONS


def test_first_row_adopts_flat_fields():
    layout = FormLayout([field("x", row_id=None, column_index=None), field("y", row_id="gone", column_index=2)], [])
    r = layout.add_row(columns=2)
    assert [(f.row_id, f.column_index) for f in layout.fields] == [(r.id, 0), (r.id, 0)]

    # later rows leave placement alone
    layout.fields.append(field("z", row_id=None, column_index=None))
    layout.add_row()
    assert layout.get_field("z").row_id is None


def test_add_field_to_flat_layout_keeps_existing_fields_placed():
    layout = FormLayout([field("x", row_id=None, column_index=None)], [])
    f = layout.add_field("email")
    row_id = layout.rows[0].id
    assert [g.id for g in layout.fields_in(row_id, 0)] == ["x", f.id]
