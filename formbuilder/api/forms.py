import logging
import secrets
import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from formbuilder.core.audit import log_event
from formbuilder.core.config import settings
from formbuilder.core.layout_engine import DropPayload, FormLayout, resolve_drop
from formbuilder.core.rendering import render_canvas, render_preview
from formbuilder.core.serialization import (
    FormImportError,
    FormSerializationError,
    deserialize_form,
    export_filename,
    serialize_form,
    validate_form_compatibility,
)
from formbuilder.db.session import get_db
from formbuilder.models.form import Form
from formbuilder.models.form_response import FormResponse
from formbuilder.schemas.forms import (
    DropOut,
    DropRequest,
    FieldCreate,
    FieldUpdate,
    FormCreate,
    FormOut,
    FormSummaryOut,
    FormUpdate,
    LayoutChangeOut,
    ResponseOut,
    RowCreate,
    RowMove,
    RowUpdate,
    ShareOut,
)
from formbuilder.schemas.layout import CompatibilityReport
from formbuilder.schemas.pagination import build_page

logger = logging.getLogger("formbuilder.api.forms")

router = APIRouter(prefix="/forms", tags=["forms"])


def new_share_id() -> str:
    return secrets.token_urlsafe(9)  # 12 url-safe chars


def layout_of(form: Form) -> FormLayout:
    return FormLayout.from_raw(form.fields or [], form.rows or [])


def _store_layout(form: Form, layout: FormLayout) -> None:
    # new list objects so the JSON columns are flagged dirty
    fields, rows = layout.to_raw()
    form.fields = fields
    form.rows = rows
    form.updated_at = datetime.utcnow()


def form_to_out(form: Form) -> FormOut:
    layout = layout_of(form)
    return FormOut(
        id=str(form.id),
        title=form.title,
        description=form.description,
        fields=layout.fields,
        rows=layout.rows,
        theme_color=form.theme_color,
        is_published=form.is_published,
        share_id=form.share_id,
        share_url=settings.share_url(form.share_id),
        created_at=form.created_at,
        updated_at=form.updated_at,
    )


def _summary_out(form: Form) -> FormSummaryOut:
    return FormSummaryOut(
        id=str(form.id),
        title=form.title,
        description=form.description,
        is_published=form.is_published,
        share_id=form.share_id,
        field_count=len(form.fields or []),
        row_count=len(form.rows or []),
        created_at=form.created_at,
        updated_at=form.updated_at,
    )


def response_to_out(r: FormResponse) -> ResponseOut:
    return ResponseOut(
        id=str(r.id),
        form_id=str(r.form_id),
        responses=r.responses,
        submitted_at=r.submitted_at,
        ip_address=r.ip_address,
        user_agent=r.user_agent,
    )


def _get_form_or_404(db: Session, form_id: uuid.UUID) -> Form:
    form = db.get(Form, form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


def create_form_from_layout(
    db: Session,
    *,
    title: str,
    description: str | None,
    layout: FormLayout,
    theme_color: str,
    is_published: bool = False,
) -> Form:
    now = datetime.utcnow()
    fields, rows = layout.to_raw()
    form = Form(
        title=title,
        description=description,
        fields=fields,
        rows=rows,
        theme_color=theme_color,
        is_published=is_published,
        share_id=new_share_id(),
        created_at=now,
        updated_at=now,
    )
    db.add(form)
    db.flush()
    return form


# ---- import / export ----


@router.post("/import/check", response_model=CompatibilityReport)
def check_import(payload: Any = Body(...)):
    return validate_form_compatibility(payload)


@router.post("/import", response_model=FormOut, status_code=status.HTTP_201_CREATED)
def import_form(
    payload: Any = Body(...),
    replace_ids: bool = Query(default=True),
    validate_structure: bool = Query(default=True),
    preserve_theme: bool = Query(default=True),
    db: Session = Depends(get_db),
):
    try:
        imported = deserialize_form(
            payload,
            replace_ids=replace_ids,
            validate_structure=validate_structure,
            preserve_theme=preserve_theme,
        )
    except FormImportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_dict())

    layout = FormLayout(imported.fields, imported.rows)
    layout.normalize()
    form = create_form_from_layout(
        db,
        title=imported.title,
        description=imported.description,
        layout=layout,
        theme_color=imported.theme_color,
    )

    log_event(
        db=db,
        action="FORM_IMPORTED",
        entity_type="form",
        entity_id=form.id,
        metadata={"field_count": len(layout.fields), "row_count": len(layout.rows), "replace_ids": replace_ids},
    )

    db.commit()
    db.refresh(form)
    return form_to_out(form)


@router.get("/{form_id}/export")
def export_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)
    try:
        envelope = serialize_form(form.title, form.description, layout.fields, layout.rows, form.theme_color)
    except FormSerializationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.to_dict())

    return JSONResponse(
        content=envelope,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(form.title)}"'},
    )


# ---- forms ----


@router.post("", response_model=FormOut, status_code=status.HTTP_201_CREATED)
def create_form(payload: FormCreate, db: Session = Depends(get_db)):
    if payload.rows or payload.fields:
        # fields without rows stay a flat form
        layout = FormLayout(payload.fields, payload.rows)
        layout.normalize()
    else:
        # an empty draft starts with one single-column row
        layout = FormLayout.new()

    form = create_form_from_layout(
        db,
        title=payload.title,
        description=payload.description,
        layout=layout,
        theme_color=payload.theme_color,
        is_published=payload.is_published,
    )

    log_event(
        db=db,
        action="FORM_CREATED",
        entity_type="form",
        entity_id=form.id,
        metadata={"title": form.title, "is_published": form.is_published},
    )

    db.commit()
    db.refresh(form)
    return form_to_out(form)


@router.get("")
def list_forms(
    search: str | None = Query(default=None, description="Search by title or description"),
    is_published: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
):
    query = db.query(Form)

    if search:
        term = f"%{search.lower()}%"
        query = query.filter(Form.title.ilike(term) | Form.description.ilike(term))

    if is_published is not None:
        query = query.filter(Form.is_published == is_published)

    total = query.count()
    forms = query.order_by(Form.updated_at.desc()).offset(offset).limit(limit).all()
    items = [_summary_out(f) for f in forms]

    if include_pagination:
        return build_page(items, total=total, limit=limit, offset=offset)
    return [i.model_dump(mode="json", by_alias=True) for i in items]


@router.get("/{form_id}", response_model=FormOut)
def get_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    return form_to_out(_get_form_or_404(db, form_id))


@router.put("/{form_id}", response_model=FormOut)
def update_form(form_id: uuid.UUID, payload: FormUpdate, db: Session = Depends(get_db)):
    """
    Partial save from the builder. Last write wins; fields/rows replace the
    stored layout and are normalised so every placement is valid.
    """
    form = _get_form_or_404(db, form_id)
    changes = payload.model_dump(exclude_unset=True)

    if "title" in changes and changes["title"] is not None:
        form.title = payload.title
    if "description" in changes:
        form.description = payload.description
    if "theme_color" in changes and changes["theme_color"] is not None:
        form.theme_color = payload.theme_color
    if "is_published" in changes and changes["is_published"] is not None:
        form.is_published = payload.is_published

    if payload.fields is not None or payload.rows is not None:
        current = layout_of(form)
        layout = FormLayout(
            payload.fields if payload.fields is not None else current.fields,
            payload.rows if payload.rows is not None else current.rows,
        )
        layout.normalize()
        _store_layout(form, layout)

    form.updated_at = datetime.utcnow()
    db.flush()

    log_event(
        db=db,
        action="FORM_UPDATED",
        entity_type="form",
        entity_id=form.id,
        metadata={"changed": sorted(changes.keys())},
    )

    db.commit()
    db.refresh(form)
    return form_to_out(form)


@router.delete("/{form_id}")
def delete_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    db.query(FormResponse).filter(FormResponse.form_id == form.id).delete(synchronize_session=False)
    db.delete(form)

    log_event(db=db, action="FORM_DELETED", entity_type="form", entity_id=form.id, metadata={"title": form.title})

    db.commit()
    return {"success": True}


def _set_published(db: Session, form_id: uuid.UUID, published: bool) -> FormOut:
    form = _get_form_or_404(db, form_id)
    if published and not form.title.strip():
        raise HTTPException(status_code=400, detail={"message": "A form needs a title before it can be published"})
    form.is_published = published
    form.updated_at = datetime.utcnow()

    log_event(
        db=db,
        action="FORM_PUBLISHED" if published else "FORM_UNPUBLISHED",
        entity_type="form",
        entity_id=form.id,
        metadata={"share_id": form.share_id},
    )

    db.commit()
    db.refresh(form)
    return form_to_out(form)


@router.post("/{form_id}/publish", response_model=FormOut)
def publish_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    return _set_published(db, form_id, True)


@router.post("/{form_id}/unpublish", response_model=FormOut)
def unpublish_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    return _set_published(db, form_id, False)


@router.post("/{form_id}/regenerate-share-id", response_model=ShareOut)
def regenerate_share_id(form_id: uuid.UUID, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    old = form.share_id
    form.share_id = new_share_id()
    form.updated_at = datetime.utcnow()

    log_event(
        db=db,
        action="SHARE_ID_REGENERATED",
        entity_type="form",
        entity_id=form.id,
        metadata={"old": old, "new": form.share_id},
    )

    db.commit()
    return ShareOut(share_id=form.share_id, share_url=settings.share_url(form.share_id))


@router.post("/{form_id}/duplicate", response_model=FormOut, status_code=status.HTTP_201_CREATED)
def duplicate_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    original = _get_form_or_404(db, form_id)
    layout = layout_of(original)

    # export + import with fresh ids, same path as a JSON round trip
    envelope = serialize_form(original.title, original.description, layout.fields, layout.rows, original.theme_color)
    copy = deserialize_form(envelope, replace_ids=True)

    form = create_form_from_layout(
        db,
        title=f"{original.title} (Copy)",
        description=copy.description,
        layout=FormLayout(copy.fields, copy.rows),
        theme_color=copy.theme_color,
    )

    log_event(
        db=db,
        action="FORM_DUPLICATED",
        entity_type="form",
        entity_id=form.id,
        metadata={"source_form_id": str(original.id)},
    )

    db.commit()
    db.refresh(form)
    return form_to_out(form)


# ---- layout editing ----


@router.post("/{form_id}/fields", response_model=LayoutChangeOut, status_code=status.HTTP_201_CREATED)
def add_field(form_id: uuid.UUID, payload: FieldCreate, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    f = layout.add_field(payload.type.value, payload.row_id, payload.column_index)
    _store_layout(form, layout)

    log_event(
        db=db,
        action="FIELD_ADDED",
        entity_type="form",
        entity_id=form.id,
        metadata={"field_id": f.id, "type": f.type, "row_id": f.row_id, "column_index": f.column_index},
    )

    db.commit()
    db.refresh(form)
    return LayoutChangeOut(form=form_to_out(form), field=f)


@router.patch("/{form_id}/fields/{field_id}", response_model=LayoutChangeOut)
def update_field(form_id: uuid.UUID, field_id: str, payload: FieldUpdate, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    changes = payload.model_dump(mode="json", exclude_unset=True)
    f = layout.update_field(field_id, changes)
    if f is None:
        raise HTTPException(status_code=404, detail="Field not found")
    _store_layout(form, layout)

    log_event(
        db=db,
        action="FIELD_UPDATED",
        entity_type="form",
        entity_id=form.id,
        metadata={"field_id": field_id, "changed": sorted(changes.keys())},
    )

    db.commit()
    db.refresh(form)
    return LayoutChangeOut(form=form_to_out(form), field=f)


@router.delete("/{form_id}/fields/{field_id}", response_model=LayoutChangeOut)
def remove_field(form_id: uuid.UUID, field_id: str, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    if not layout.remove_field(field_id):
        raise HTTPException(status_code=404, detail="Field not found")
    _store_layout(form, layout)

    log_event(db=db, action="FIELD_REMOVED", entity_type="form", entity_id=form.id, metadata={"field_id": field_id})

    db.commit()
    db.refresh(form)
    return LayoutChangeOut(form=form_to_out(form))


@router.post("/{form_id}/rows", response_model=LayoutChangeOut, status_code=status.HTTP_201_CREATED)
def add_row(form_id: uuid.UUID, payload: RowCreate | None = None, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    row = layout.add_row(columns=payload.columns if payload else 1)
    _store_layout(form, layout)

    log_event(
        db=db,
        action="ROW_ADDED",
        entity_type="form",
        entity_id=form.id,
        metadata={"row_id": row.id, "order": row.order, "columns": row.columns},
    )

    db.commit()
    db.refresh(form)
    return LayoutChangeOut(form=form_to_out(form), row=row)


@router.patch("/{form_id}/rows/{row_id}", response_model=LayoutChangeOut)
def update_row(form_id: uuid.UUID, row_id: str, payload: RowUpdate, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    row = layout.update_row(row_id, changes)
    if row is None:
        raise HTTPException(status_code=404, detail="Row not found")
    _store_layout(form, layout)

    log_event(
        db=db,
        action="ROW_UPDATED",
        entity_type="form",
        entity_id=form.id,
        metadata={"row_id": row_id, **changes},
    )

    db.commit()
    db.refresh(form)
    return LayoutChangeOut(form=form_to_out(form), row=row)


@router.delete("/{form_id}/rows/{row_id}", response_model=LayoutChangeOut)
def remove_row(form_id: uuid.UUID, row_id: str, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    field_count = len(layout.fields)
    if not layout.remove_row(row_id):
        raise HTTPException(status_code=404, detail="Row not found")
    _store_layout(form, layout)

    log_event(
        db=db,
        action="ROW_REMOVED",
        entity_type="form",
        entity_id=form.id,
        metadata={"row_id": row_id, "fields_removed": field_count - len(layout.fields)},
    )

    db.commit()
    db.refresh(form)
    return LayoutChangeOut(form=form_to_out(form))


@router.post("/{form_id}/rows/{row_id}/move", response_model=LayoutChangeOut)
def move_row(form_id: uuid.UUID, row_id: str, payload: RowMove, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    if layout.get_row(row_id) is None:
        raise HTTPException(status_code=404, detail="Row not found")

    # boundary moves are a silent no-op
    if layout.move_row(row_id, payload.direction):
        _store_layout(form, layout)
        log_event(
            db=db,
            action="ROW_MOVED",
            entity_type="form",
            entity_id=form.id,
            metadata={"row_id": row_id, "direction": payload.direction},
        )
        db.commit()
        db.refresh(form)

    return LayoutChangeOut(form=form_to_out(form), row=layout.get_row(row_id))


@router.post("/{form_id}/drop", response_model=DropOut)
def drop(form_id: uuid.UUID, payload: DropRequest, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)

    result = resolve_drop(
        layout,
        DropPayload(field_type=payload.field_type, field_id=payload.field_id),
        payload.row_id,
        payload.column_index,
    )

    if result.action != "noop":
        _store_layout(form, layout)
        log_event(
            db=db,
            action="FIELD_DROPPED",
            entity_type="form",
            entity_id=form.id,
            metadata={
                "result": result.action,
                "field_id": result.field.id if result.field else None,
                "row_id": payload.row_id,
                "column_index": payload.column_index,
            },
        )
        db.commit()
        db.refresh(form)
    else:
        logger.debug("drop ignored form=%s reason=%s", form.id, result.reason)

    return DropOut(action=result.action, reason=result.reason, field=result.field, form=form_to_out(form))


# ---- rendering ----


@router.get("/{form_id}/canvas")
def get_canvas(form_id: uuid.UUID, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)
    return render_canvas(layout.fields, layout.rows, form.theme_color)


@router.get("/{form_id}/preview")
def get_preview(form_id: uuid.UUID, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    layout = layout_of(form)
    return render_preview(
        layout.fields,
        layout.rows,
        form.theme_color,
        title=form.title,
        description=form.description,
    )


# ---- responses ----


@router.get("/{form_id}/responses")
def list_responses(
    form_id: uuid.UUID,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
):
    form = _get_form_or_404(db, form_id)
    query = db.query(FormResponse).filter(FormResponse.form_id == form.id)

    total = query.count()
    rows = query.order_by(FormResponse.submitted_at.desc()).offset(offset).limit(limit).all()
    items = [response_to_out(r) for r in rows]

    if include_pagination:
        return build_page(items, total=total, limit=limit, offset=offset)
    return [i.model_dump(mode="json", by_alias=True) for i in items]
