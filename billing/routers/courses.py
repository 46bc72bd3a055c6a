# billing/routers/courses.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from billing.core.database import get_db
from billing.core.dependencies import get_current_account, get_current_admin
from billing.models.account import Account
from billing.schemas.course import (
    CourseCreate,
    CourseListResponse,
    CourseResponse,
    CourseSavedResponse,
    CourseUpdate,
)
from billing.schemas.payment import PaymentOutcome
from billing.services.course import CourseService
from billing.services.payment import PaymentService

router = APIRouter(
    prefix="/courses",
    tags=["Courses"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=CourseListResponse, response_model_exclude_none=True)
def list_courses(db: Session = Depends(get_db)):
    """
    List the catalog: code, name, type and price of every course.
    Available to everyone.
    """
    courses = CourseService(db).list_courses()
    return CourseListResponse(
        courses=[CourseResponse.model_validate(c) for c in courses],
        total=len(courses),
    )


@router.get("/{code}", response_model=CourseResponse, response_model_exclude_none=True)
def get_course(code: str, db: Session = Depends(get_db)):
    return CourseService(db).get_by_code(code)


@router.post(
    "",
    response_model=CourseSavedResponse,
    status_code=status.HTTP_201_CREATED,
    response_model_exclude_none=True,
)
def create_course(
    course_in: CourseCreate,
    db: Session = Depends(get_db),
    admin: Account = Depends(get_current_admin),
):
    """Create a course (admin only)"""
    course = CourseService(db).create_course(course_in)
    return CourseSavedResponse(course=CourseResponse.model_validate(course))


@router.post(
    "/{code}", response_model=CourseSavedResponse, response_model_exclude_none=True
)
def update_course(
    code: str,
    course_in: CourseUpdate,
    db: Session = Depends(get_db),
    admin: Account = Depends(get_current_admin),
):
    """
    Edit a course (admin only). The code itself may be changed;
    the course keeps its identity and its transactions.
    """
    course = CourseService(db).update_course(code, course_in)
    return CourseSavedResponse(course=CourseResponse.model_validate(course))


@router.post("/{code}/pay", response_model=PaymentOutcome)
def pay_for_course(
    code: str,
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_account),
):
    """
    Buy or rent a course with the caller's balance.
    Paying again for a course that is already held charges nothing.
    """
    return PaymentService(db).pay(current_account.id, code)
