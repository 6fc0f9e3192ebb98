from __future__ import annotations

from pymongo.errors import DuplicateKeyError

from core.database import db
from schemas.enrollment_schema import EnrollmentCreate, EnrollmentOut

_ENROLLMENT_INDEXES_READY = False


async def _ensure_enrollment_indexes() -> None:
    global _ENROLLMENT_INDEXES_READY
    if _ENROLLMENT_INDEXES_READY:
        return
    await db.enrollments.create_index(
        [("studentId", 1), ("courseId", 1), ("paymentId", 1)],
        name="idx_enrollment_student_course_payment_unique",
        unique=True,
    )
    await db.enrollments.create_index(
        [("studentId", 1), ("courseId", 1)],
        name="idx_enrollment_student_course",
    )
    _ENROLLMENT_INDEXES_READY = True


async def create_enrollment(payload: EnrollmentCreate) -> tuple[EnrollmentOut, bool]:
    """Returns the enrollment and whether this call created it.

    A duplicate (studentId, courseId, paymentId) resolves to the stored row.
    """
    await _ensure_enrollment_indexes()
    key = {"studentId": payload.studentId, "courseId": payload.courseId, "paymentId": payload.paymentId}
    try:
        result = await db.enrollments.insert_one(payload.model_dump())
    except DuplicateKeyError:
        existing = await db.enrollments.find_one(key)
        return EnrollmentOut(**existing), False  # type: ignore[arg-type]

    stored = await db.enrollments.find_one({"_id": result.inserted_id})
    return EnrollmentOut(**stored), True  # type: ignore[arg-type]


async def get_enrollment(student_id: str, course_id: str) -> EnrollmentOut | None:
    await _ensure_enrollment_indexes()
    row = await db.enrollments.find_one({"studentId": student_id, "courseId": course_id})
    if row is None:
        return None
    return EnrollmentOut(**row)
