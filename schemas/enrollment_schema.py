from schemas.imports import *


class EnrollmentCreate(BaseModel):
    studentId: str
    courseId: str
    paymentId: str
    amount: float = Field(ge=0)
    enrolledAt: int = Field(default_factory=lambda: int(time.time()))


class EnrollmentOut(MongoOut):
    studentId: str
    courseId: str
    paymentId: str
    amount: float
    enrolledAt: Optional[int] = None


class EnrollmentStatusOut(BaseModel):
    courseId: str
    purchaserId: str
    isEnrolled: bool
