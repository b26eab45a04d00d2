"""Subject model definitions."""

from sqlalchemy import Column, Integer, String, Text
from backend.database import Base


class Subject(Base):
    """A subject questions are filed under. Managed by admins."""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=False)
