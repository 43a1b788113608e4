import logging
from typing import Any

from sqlalchemy.orm import Session

from formbuilder.models.audit_event import AuditEvent

logger = logging.getLogger("formbuilder.audit")


def log_event(
    *,
    db: Session,
    action: str,
    entity_type: str,
    entity_id,
    metadata: dict[str, Any] | None = None,
):
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
    )
    db.add(event)
    logger.info("%s %s=%s %s", action, entity_type, entity_id, metadata or {})
