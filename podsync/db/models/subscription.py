"""Subscription database model."""
from sqlalchemy import BigInteger, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from podsync.db.base import Base


class Subscription(Base):
    """A device's subscription to a feed URL; ``deleted`` is the tombstone."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("username", "device", "url", name="uq_subscriptions_username_device_url"),
        Index("ix_subscriptions_username_device", "username", "device"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(
        String(255), ForeignKey("users.username", ondelete="CASCADE"), nullable=False
    )
    device = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    created = Column(BigInteger, nullable=False)
    deleted = Column(BigInteger, nullable=True)
