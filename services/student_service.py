from typing import Optional

from core.errors import purchaser_profile_incomplete
from core.identity import PurchaserProfile, get_identity_provider
from repositories.student_repo import create_student_if_not_exists, get_student_by_clerk_id
from schemas.student_schema import StudentCreate, StudentOut


async def fetch_purchaser_profile(purchaser_id: str) -> PurchaserProfile:
    """Profile from the identity provider; must carry a contact email.

    Raises:
        AppException 422 (PURCHASER_PROFILE_INCOMPLETE): no usable email
    """
    profile = await get_identity_provider().fetch_profile(purchaser_id)
    if not profile.email:
        raise purchaser_profile_incomplete(purchaser_id)
    return profile


async def ensure_student(profile: PurchaserProfile) -> StudentOut:
    return await create_student_if_not_exists(
        StudentCreate(
            clerkId=profile.id,
            email=profile.email or "",
            firstName=profile.first_name or profile.email or "",
            lastName=profile.last_name or "",
            imageUrl=profile.avatar_url or "",
        )
    )


async def retrieve_student_by_purchaser_id(purchaser_id: str) -> Optional[StudentOut]:
    return await get_student_by_clerk_id(purchaser_id)
