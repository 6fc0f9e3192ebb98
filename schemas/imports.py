from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Any
from enum import Enum
import time


FREE_PAYMENT_ID = "free"


class CallbackState(str, Enum):
    RECEIVED = "RECEIVED"
    PARSED = "PARSED"
    VALIDATED = "VALIDATED"
    ENRICHED = "ENRICHED"
    COMMITTED = "COMMITTED"
    REJECTED = "REJECTED"


class RejectionReason(str, Enum):
    MALFORMED = "malformed"
    PAYMENT_FAILED = "payment_failed"
    MISSING_METADATA = "missing_metadata"
    INCOMPLETE_METADATA = "incomplete_metadata"
    INVALID_CORRELATION = "invalid_correlation"
    STUDENT_NOT_FOUND = "student_not_found"
    LOOKUP_FAILED = "lookup_failed"
    PERSISTENCE_FAILED = "persistence_failed"


class MongoOut(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        if isinstance(values, dict) and "_id" in values and isinstance(values["_id"], ObjectId):
            values = dict(values)
            values["_id"] = str(values["_id"])  # coerce to string before validation
        return values

    model_config = ConfigDict(populate_by_name=True)
