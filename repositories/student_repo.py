from __future__ import annotations

from pymongo import ReturnDocument

from core.database import db
from schemas.student_schema import StudentCreate, StudentOut

_STUDENT_INDEXES_READY = False


async def _ensure_student_indexes() -> None:
    global _STUDENT_INDEXES_READY
    if _STUDENT_INDEXES_READY:
        return
    await db.students.create_index("clerkId", name="idx_student_clerk_id_unique", unique=True)
    _STUDENT_INDEXES_READY = True


async def get_student_by_clerk_id(clerk_id: str) -> StudentOut | None:
    await _ensure_student_indexes()
    row = await db.students.find_one({"clerkId": clerk_id})
    if row is None:
        return None
    return StudentOut(**row)


async def create_student_if_not_exists(payload: StudentCreate) -> StudentOut:
    """Insert on first sight of the clerk id; an existing record is returned untouched."""
    await _ensure_student_indexes()
    row = await db.students.find_one_and_update(
        {"clerkId": payload.clerkId},
        {"$setOnInsert": payload.model_dump()},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return StudentOut(**row)
