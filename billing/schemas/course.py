# billing/schemas/course.py
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from billing.models.course import CourseType

# ==================== Course Schemas ====================


class CourseCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    type: CourseType
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)

    @model_validator(mode="after")
    def check_price(self):
        if self.type.is_paid and self.price is None:
            raise ValueError(f"price is required for '{self.type.value}' courses")
        if not self.type.is_paid:
            self.price = None
        return self


class CourseUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=255)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[CourseType] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    type: CourseType
    price: Optional[Decimal] = None

    @field_serializer("price")
    def serialize_price(self, price: Optional[Decimal]):
        return float(price) if price is not None else None


class CourseListResponse(BaseModel):
    courses: List[CourseResponse]
    total: int


class CourseSavedResponse(BaseModel):
    success: bool = True
    course: CourseResponse
