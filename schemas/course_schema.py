from schemas.imports import *


class CourseOut(MongoOut):
    title: str = ""
    price: Optional[float] = None
    slug: Optional[str] = None
