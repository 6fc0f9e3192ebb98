from core.errors import course_not_found
from repositories.course_repo import get_course_by_id
from schemas.course_schema import CourseOut


async def retrieve_course(course_id: str) -> CourseOut:
    """Catalog lookup for the price and title used at payment time.

    Raises:
        AppException 404 (COURSE_NOT_FOUND): no course with that id
    """
    course = await get_course_by_id(course_id)
    if course is None:
        raise course_not_found(course_id)
    return course
