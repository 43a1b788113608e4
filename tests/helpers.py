from datetime import datetime

from sqlalchemy.orm import Session

from formbuilder.core.layout_engine import FormLayout
from formbuilder.models.form import Form
from formbuilder.models.form_response import FormResponse
from formbuilder.schemas.layout import FormField, FormRow


def row(id: str, order: int, columns: int = 1) -> FormRow:
    return FormRow(id=id, order=order, columns=columns)


def field(id: str, type: str = "text", row_id: str | None = None, column_index: int | None = 0, **kw) -> FormField:
    return FormField(id=id, type=type, label=kw.pop("label", id), row_id=row_id, column_index=column_index, **kw)


def two_row_layout() -> FormLayout:
    """
    r1 (order 0, 1 col):  a
    r2 (order 1, 2 cols): b | c, d
    """
    return FormLayout(
        fields=[
            field("a", row_id="r1", column_index=0),
            field("b", type="email", row_id="r2", column_index=0),
            field("c", type="select", row_id="r2", column_index=1, options=["x", "y"]),
            field("d", type="number", row_id="r2", column_index=1),
        ],
        rows=[row("r2", 1, columns=2), row("r1", 0)],
    )


def create_form(
    db: Session,
    *,
    title: str = "Test Form",
    description: str | None = None,
    layout: FormLayout | None = None,
    theme_color: str = "#6366F1",
    is_published: bool = False,
    share_id: str | None = None,
) -> Form:
    layout = layout or FormLayout.new()
    fields, rows = layout.to_raw()
    form = Form(
        title=title,
        description=description,
        fields=fields,
        rows=rows,
        theme_color=theme_color,
        is_published=is_published,
        share_id=share_id or f"share-{title.lower().replace(' ', '-')}",
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    return form


def create_response(db: Session, *, form: Form, responses: dict) -> FormResponse:
    r = FormResponse(form_id=form.id, responses=responses, submitted_at=datetime.utcnow())
    db.add(r)
    db.commit()
    db.refresh(r)
    return r
