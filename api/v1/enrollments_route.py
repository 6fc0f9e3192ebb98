from fastapi import APIRouter, Query

from core.response_envelope import document_response
from schemas.enrollment_schema import EnrollmentStatusOut
from services.enrollment_service import is_enrolled_in_course

router = APIRouter(prefix="/enrollments", tags=["Enrollments"])


@router.get("/status")
@document_response(
    message="Enrollment status fetched",
    success_example={"courseId": "course-1", "purchaserId": "user_1", "isEnrolled": True},
)
async def enrollment_status(
    courseId: str = Query(min_length=1),
    purchaserId: str = Query(min_length=1),
):
    enrolled = await is_enrolled_in_course(purchaser_id=purchaserId, course_id=courseId)
    return EnrollmentStatusOut(courseId=courseId, purchaserId=purchaserId, isEnrolled=enrolled)
