import uuid

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from tracking_app.database.connection import Base
from tracking_app.utils.time import utcnow


class Link(Base):
    """
    Alias -> target URL mapping with lifecycle and click counter.
    
    Alias uniqueness only holds among active rows (partial unique index
    below), so a deactivated alias can be reused.
    """
    __tablename__ = "links"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    alias = Column(String(50), nullable=False, index=True)
    target_url = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    expires_at = Column(DateTime, nullable=True)
    # Only ever changed by "click_count = click_count + 1" in the store
    click_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Link {self.alias!r} active={self.is_active} clicks={self.click_count}>"


Index(
    "uq_links_active_alias",
    Link.alias,
    unique=True,
    sqlite_where=Link.is_active == True,  # noqa: E712
    postgresql_where=Link.is_active == True,  # noqa: E712
)

# Sweep predicate: only active links with an expiry are scanned
Index(
    "ix_links_active_expires_at",
    Link.expires_at,
    sqlite_where=Link.is_active == True,  # noqa: E712
    postgresql_where=Link.is_active == True,  # noqa: E712
)
