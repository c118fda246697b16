"""Image model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from student_platform.database import Base
from student_platform.models.user import utc_now


class Image(Base):
    """An image delivered by the administrator to a user."""
    __tablename__ = "images"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    image_name = Column(String, nullable=False)  # target phone number
    url = Column(String, nullable=False)
    sent_at = Column(DateTime, nullable=False, default=utc_now)
