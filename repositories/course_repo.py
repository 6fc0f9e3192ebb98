from __future__ import annotations

from bson import ObjectId

from core.database import db
from schemas.course_schema import CourseOut


def id_filter(document_id: str) -> dict:
    if ObjectId.is_valid(document_id):
        return {"_id": {"$in": [ObjectId(document_id), document_id]}}
    return {"_id": document_id}


async def get_course_by_id(course_id: str) -> CourseOut | None:
    row = await db.courses.find_one(id_filter(course_id))
    if row is None:
        return None
    return CourseOut(**row)
