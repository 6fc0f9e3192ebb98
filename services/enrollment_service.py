from __future__ import annotations

import structlog
from pymongo.errors import PyMongoError

from core.errors import enrollment_persistence_failed
from repositories.enrollment_repo import create_enrollment, get_enrollment
from schemas.enrollment_schema import EnrollmentCreate, EnrollmentOut
from services.student_service import retrieve_student_by_purchaser_id

logger = structlog.get_logger().bind(component="enrollment_service")


async def enroll_student(*, student_id: str, course_id: str, payment_id: str, amount: float) -> EnrollmentOut:
    """Create the enrollment; a repeat of the same payment returns the stored row.

    Raises:
        AppException 500 (ENROLLMENT_PERSISTENCE_FAILED): the store rejected the write
    """
    try:
        enrollment, created = await create_enrollment(
            EnrollmentCreate(
                studentId=student_id,
                courseId=course_id,
                paymentId=payment_id,
                amount=amount,
            )
        )
    except PyMongoError as err:
        raise enrollment_persistence_failed(str(err)) from err

    if created:
        logger.info(
            "enrollment_created",
            student_id=student_id,
            course_id=course_id,
            payment_id=payment_id,
            amount=amount,
        )
    else:
        logger.info(
            "enrollment_already_exists",
            student_id=student_id,
            course_id=course_id,
            payment_id=payment_id,
        )
    return enrollment


async def is_enrolled_in_course(*, purchaser_id: str, course_id: str) -> bool:
    student = await retrieve_student_by_purchaser_id(purchaser_id)
    if student is None or student.id is None:
        return False
    return await get_enrollment(student_id=student.id, course_id=course_id) is not None
