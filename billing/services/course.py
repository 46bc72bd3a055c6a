# billing/services/course.py
import logging
from typing import List

from sqlalchemy.orm import Session

from billing.core.decorator import db_exception
from billing.core.exceptions import ConflictError, NotFoundError, ValidationError
from billing.models.course import Course, CourseType
from billing.schemas.course import CourseCreate, CourseUpdate

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, db: Session):
        self.db = db

    def list_courses(self) -> List[Course]:
        return self.db.query(Course).order_by(Course.code).all()

    def find_by_code(self, code: str):
        return self.db.query(Course).filter(Course.code == code).first()

    def get_by_code(self, code: str) -> Course:
        course = self.find_by_code(code)
        if not course:
            raise NotFoundError(f"Course '{code}' not found")
        return course

    @db_exception("Course with this code already exists")
    def create_course(self, course_in: CourseCreate) -> Course:
        """Create a new course (admin only)"""
        if self.find_by_code(course_in.code):
            raise ConflictError("Course with this code already exists")

        course = Course(**course_in.model_dump())
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)

        logger.info(f"Course created: {course.code} ({course.type.value})")
        return course

    @db_exception("Course with this code already exists")
    def update_course(self, code: str, course_in: CourseUpdate) -> Course:
        """
        Update a course (admin only).
        Changing the code keeps the course id, so existing transactions
        stay attached; the old code stops resolving.
        """
        course = self.get_by_code(code)
        changes = course_in.model_dump(exclude_unset=True)

        new_code = changes.get("code")
        if new_code and new_code != course.code and self.find_by_code(new_code):
            raise ConflictError("Course with this code already exists")

        for field, value in changes.items():
            if value is None and field in ("code", "name", "type"):
                continue
            setattr(course, field, value)

        if course.type == CourseType.FREE:
            course.price = None
        elif course.price is None:
            self.db.rollback()
            raise ValidationError(
                f"price is required for '{course.type.value}' courses"
            )

        self.db.commit()
        self.db.refresh(course)

        logger.info(f"Course updated: {code} -> {course.code}")
        return course
