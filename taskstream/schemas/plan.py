# schemas/plan.py
from __future__ import annotations
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

StepStatus = Literal["pending", "running", "completed", "error"]

# pending < running < completed; error is terminal like completed
STATUS_RANK = {"pending": 0, "running": 1, "completed": 2, "error": 2}


class PlanStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="unique within one plan")
    title: str = ""
    description: str = ""
    status: StepStatus = "pending"


def can_advance(current: StepStatus, target: StepStatus) -> bool:
    return STATUS_RANK[target] > STATUS_RANK[current]
