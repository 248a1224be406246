from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from tenantkit.application.otp_manager import OtpManager
from tenantkit.domain.errors import PersistenceFailure
from tenantkit.presentation.dependencies import get_otp_manager
from tenantkit.schemas.requests import OtpRequestIn, OtpVerifyIn
from tenantkit.schemas.responses import AcceptedOut, OkOut

router = APIRouter(prefix="/otp", tags=["OTP"])


@router.post(
    "/request",
    status_code=202,
    response_model=AcceptedOut,
)
async def post_request_otp(
    body: OtpRequestIn,
    manager: Annotated[OtpManager, Depends(get_otp_manager)],
):
    try:
        result = await manager.issue(body.identifier.strip())
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="otp store unavailable",
        )
    return AcceptedOut(delivered=result.delivered)


@router.post("/verify", response_model=OkOut)
async def post_verify_otp(
    body: OtpVerifyIn,
    manager: Annotated[OtpManager, Depends(get_otp_manager)],
):
    try:
        valid = await manager.validate(body.identifier.strip(), body.code)
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="otp store unavailable",
        )
    # same answer for wrong, expired and unknown codes
    if not valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid otp"
        )
    return OkOut()
