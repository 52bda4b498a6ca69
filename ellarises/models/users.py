# ellarises/models/users.py
from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from ellarises.db import Base

LEVEL_MANAGER = "m"
LEVEL_USER = "u"


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    level = Column(String(1), nullable=False, server_default=LEVEL_USER)

    # A participant is linked from at most one user account.
    participant_id = Column(
        Integer,
        ForeignKey("participant_info.participant_id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    participant = relationship("Participant", back_populates="user")

    @property
    def is_manager(self) -> bool:
        return self.level == LEVEL_MANAGER

    def __repr__(self) -> str:
        return f"<User id={self.user_id} email={self.email!r} level={self.level!r}>"
