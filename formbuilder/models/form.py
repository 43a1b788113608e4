import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formbuilder.db.base import Base


class Form(Base):
    __tablename__ = "forms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Layout is stored as the same camelCase dicts used by the export format.
    # Always assign a new list; in-place mutation is not tracked.
    fields: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    rows: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    theme_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#6366F1")
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # public identifier for /public/{share_id}
    share_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    responses = relationship(
        "FormResponse",
        back_populates="form",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )
