"""SQLAlchemy database models."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String, Text

from database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StoredDocumentDB(Base):
    """Database model for one locally persisted collection or scalar.

    Every collection key (sessions, templates, one per health metric type,
    view range, exercise draft) is a single row whose JSON payload is
    replaced wholesale on each write.
    """

    __tablename__ = "stored_documents"

    key = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)  # JSON document
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self):
        return f"<StoredDocumentDB(key={self.key}, updated_at={self.updated_at})>"
