import uuid
from sqlalchemy import Boolean, Column, Date, String, Uuid
from classfolio.core.database import Base
from classfolio.models.base import TimestampMixin

class SchoolClass(Base, TimestampMixin):
    """
    A class students join with an invite code.
    """
    __tablename__ = "classes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    semester = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    invite_code = Column(String(6), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
