"""User database model."""
from sqlalchemy import Column, String

from podsync.db.base import Base


class User(Base):
    """An account; ``session_id`` is NULL while logged out."""

    __tablename__ = "users"

    username = Column(String(255), primary_key=True)
    pwhash = Column(String(255), nullable=False)
    session_id = Column(String(32), nullable=True, index=True)
