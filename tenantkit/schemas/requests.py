from pydantic import BaseModel, Field


class OtpRequestIn(BaseModel):
    identifier: str = Field(
        ...,
        description="Phone number (E.164) or email address",
        min_length=3,
        max_length=255,
    )


class OtpVerifyIn(BaseModel):
    identifier: str = Field(..., min_length=3, max_length=255)
    code: str = Field(..., min_length=1, max_length=12)
