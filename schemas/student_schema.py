from schemas.imports import *


class StudentBase(BaseModel):
    clerkId: str
    email: str
    firstName: str
    lastName: str = ""
    imageUrl: str = ""


class StudentCreate(StudentBase):
    date_created: int = Field(default_factory=lambda: int(time.time()))


class StudentOut(StudentBase, MongoOut):
    date_created: Optional[int] = None
