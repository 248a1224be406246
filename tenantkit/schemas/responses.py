from typing import Literal

from pydantic import BaseModel, Field


class AcceptedOut(BaseModel):
    status: Literal["accepted"] = "accepted"
    delivered: bool = Field(..., description="Whether a channel accepted the code")


class OkOut(BaseModel):
    status: Literal["ok"] = "ok"


class FlushOut(BaseModel):
    status: Literal["ok"] = "ok"
    removed: int = Field(..., description="Cache entries removed for the tenant")
