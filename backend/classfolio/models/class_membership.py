from sqlalchemy import Column, DateTime, ForeignKey, Numeric, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from classfolio.core.database import Base
from classfolio.models.base import STARTING_BALANCE, IdMixin, utcnow

class ClassMembership(Base, IdMixin):
    """
    Student membership in a class. Append-only.
    """
    __tablename__ = "class_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "class_id", name="uq_class_membership_user_class"),
    )

    user_id = Column(Uuid, nullable=False, index=True)
    class_id = Column(Uuid, ForeignKey("classes.id"), nullable=False, index=True)
    starting_balance = Column(Numeric(14, 2), nullable=False, default=STARTING_BALANCE)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    school_class = relationship("SchoolClass", lazy="joined")
