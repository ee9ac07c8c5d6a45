import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, String, Text
from tracking_app.database.connection import Base
from tracking_app.utils.time import utcnow

IP_ADDRESS_MAX_LENGTH = 64


class Visit(Base):
    """
    One successful resolution of a link. Immutable once written.
    """
    __tablename__ = "visits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    link_id = Column(String(36), ForeignKey("links.id"), nullable=False, index=True)
    ip_address = Column(String(IP_ADDRESS_MAX_LENGTH), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    country = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    device = Column(String(20), nullable=True)
    browser = Column(String(20), nullable=True)
    user_agent = Column(Text, nullable=True)
    visited_at = Column(DateTime, nullable=False, default=utcnow, index=True)

