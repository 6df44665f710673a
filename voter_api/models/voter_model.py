from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

# largest integer BSON can store (signed 64-bit)
MAX_ID = 2**63 - 1


class HistoryEntry(BaseModel):
    poll_id: int = Field(..., ge=0, le=MAX_ID, examples=[5])
    vote_id: int = Field(..., ge=0, le=MAX_ID, examples=[1])
    vote_date: datetime


class Voter(BaseModel):
    id: int = Field(..., ge=0, le=MAX_ID, examples=[1])
    name: str = ""
    email: str = ""
    history: List[HistoryEntry] = Field(default_factory=list)

    @field_validator("history")
    @classmethod
    def unique_poll_ids(cls, history: List[HistoryEntry]) -> List[HistoryEntry]:
        seen = set()
        for entry in history:
            if entry.poll_id in seen:
                raise ValueError(f"history has more than one entry for poll {entry.poll_id}")
            seen.add(entry.poll_id)
        return history
