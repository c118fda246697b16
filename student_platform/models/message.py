"""Message model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from student_platform.database import Base
from student_platform.models.user import utc_now

# Messages are addressed to the administrator as a role, not to an account.
ADMIN_RECEIVER = "admin"


class Message(Base):
    """A text message sent by a user to the administrator."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    receiver_id = Column(String, nullable=False, default=ADMIN_RECEIVER)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utc_now)

    sender = relationship("User", lazy="joined")
