"""Episode action database model."""
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from podsync.db.base import Base


class EpisodeAction(Base):
    """Latest known state of one episode for one account.

    ``modified`` only advances when ``content_hash`` changes.
    """

    __tablename__ = "episodes"
    __table_args__ = (
        UniqueConstraint("username", "podcast", "episode", name="uq_episodes_username_podcast_episode"),
        Index("ix_episodes_username_modified", "username", "modified"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(
        String(255), ForeignKey("users.username", ondelete="CASCADE"), nullable=False
    )
    device = Column(String(255), nullable=True)
    podcast = Column(Text, nullable=False)
    episode = Column(Text, nullable=False)

    timestamp = Column(DateTime(timezone=False), nullable=True)
    guid = Column(Text, nullable=True)
    action = Column(String(20), nullable=False)
    started = Column(BigInteger, nullable=True)
    position = Column(BigInteger, nullable=True)
    total = Column(BigInteger, nullable=True)

    modified = Column(BigInteger, nullable=False)
    content_hash = Column(String(64), nullable=False)
