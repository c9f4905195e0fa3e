from pydantic import BaseModel
from typing import List


class TimelineStageOut(BaseModel):
    key: str
    label: str
    isCompleted: bool
    isCurrent: bool


class TimelineOut(BaseModel):
    orderId: int
    status: str
    currentIndex: int
    returnCompleted: bool
    stages: List[TimelineStageOut]
    # connectors[i] is True when the bar between stage i and i + 1 is filled
    connectors: List[bool]
