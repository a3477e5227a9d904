"""Device database model."""
from sqlalchemy import Column, ForeignKey, String, Text

from podsync.db.base import Base


class Device(Base):
    """A client device, keyed by ``(username, id)``."""

    __tablename__ = "devices"

    username = Column(
        String(255), ForeignKey("users.username", ondelete="CASCADE"), primary_key=True
    )
    id = Column(String(255), primary_key=True)
    caption = Column(Text, nullable=False, default="")
    type = Column(String(20), nullable=False, default="other")
