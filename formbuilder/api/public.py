from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from formbuilder.api.forms import layout_of, response_to_out
from formbuilder.core.audit import log_event
from formbuilder.core.rendering import render_public_form, visible_fields
from formbuilder.core.submission_validation import error_messages, validate_responses, validate_submission_or_400
from formbuilder.db.session import get_db
from formbuilder.models.form import Form
from formbuilder.models.form_response import FormResponse
from formbuilder.schemas.forms import ResponseCreate, ResponseOut

router = APIRouter(prefix="/public", tags=["public"])


def _get_published_or_404(db: Session, share_id: str) -> Form:
    form = db.query(Form).filter(Form.share_id == share_id).one_or_none()
    # drafts are not reachable through the share link
    if not form or not form.is_published:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


@router.get("/{share_id}")
def get_public_form(share_id: str, db: Session = Depends(get_db)):
    form = _get_published_or_404(db, share_id)
    layout = layout_of(form)
    return render_public_form(
        title=form.title,
        description=form.description,
        fields=layout.fields,
        rows=layout.rows,
        theme_color=form.theme_color,
        share_id=form.share_id,
    )


@router.post("/{share_id}/validate")
def validate_public_submission(share_id: str, payload: ResponseCreate, db: Session = Depends(get_db)):
    form = _get_published_or_404(db, share_id)
    layout = layout_of(form)
    errors = validate_responses(visible_fields(layout.fields, layout.rows), payload.responses)
    return {"isValid": not errors, "errors": error_messages(errors)}


@router.post("/{share_id}/responses", response_model=ResponseOut, status_code=status.HTTP_201_CREATED)
def submit_response(
    share_id: str,
    payload: ResponseCreate,
    request: Request,
    db: Session = Depends(get_db),
    user_agent: str | None = Header(default=None),
):
    form = _get_published_or_404(db, share_id)
    layout = layout_of(form)
    # only what the public form shows can be answered
    fields = visible_fields(layout.fields, layout.rows)

    validate_submission_or_400(fields, payload.responses)

    known = {f.id for f in fields}
    r = FormResponse(
        form_id=form.id,
        responses={k: v for k, v in payload.responses.items() if k in known},
        submitted_at=datetime.utcnow(),
        ip_address=request.client.host if request.client else None,
        user_agent=user_agent,
    )
    db.add(r)
    db.flush()

    log_event(
        db=db,
        action="RESPONSE_SUBMITTED",
        entity_type="form_response",
        entity_id=r.id,
        metadata={"form_id": str(form.id), "answered": len(r.responses)},
    )

    db.commit()
    db.refresh(r)
    return response_to_out(r)
