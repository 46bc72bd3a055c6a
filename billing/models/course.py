# billing/models/course.py
import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from billing.core.database import Base


class CourseType(str, enum.Enum):
    FREE = "free"
    RENT = "rent"
    BUY = "buy"

    @property
    def is_paid(self) -> bool:
        return self is not CourseType.FREE


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)

    # Lookup key; renaming keeps the id
    code = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)

    type = Column(
        Enum(
            CourseType,
            name="course_type",
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            length=10,
        ),
        nullable=False,
        default=CourseType.FREE,
    )
    price = Column(Numeric(12, 2), nullable=True)  # NULL for free courses

    # Timestamps
    created_at = Column(
        DateTime(timezone=False), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    transactions = relationship("Transaction", back_populates="course")

    __table_args__ = (
        CheckConstraint("price IS NULL OR price >= 0", name="ck_courses_price_non_negative"),
    )

    def __repr__(self):
        return f"<Course(id={self.id}, code='{self.code}', type={self.type}, price={self.price})>"
