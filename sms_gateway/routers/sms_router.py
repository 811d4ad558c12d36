from fastapi import APIRouter, Depends
import logging

from ..application.services.config_manager import ConfigManager
from ..application.services.identity_service import IdentityService, ProvisioningError
from ..application.services.otp_service import (
    OTPService, Sent, Verified, InvalidRequest, Disabled, Unconfigured, ProviderFailure, INTERNAL_ERROR,
)
from ..dependencies import get_config_manager, get_identity_service, get_otp_service, otp_rate_limit
from ..exceptions import error_response
from ..schemas import (
    SendOTPRequest, SendOTPResponse, VerifyOTPRequest, VerifyOTPResponse,
    AgentUpsertRequest, AgentUpsertResponse, SmsConfigStatus, ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sms", tags=["SMS OTP"])

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _failure_response(result):
    """Map a non-success flow outcome to its HTTP response."""
    if isinstance(result, InvalidRequest):
        return error_response(400, result.message)
    if isinstance(result, Disabled):
        return error_response(503, result.message)
    if isinstance(result, Unconfigured):
        return error_response(500, result.message)
    if isinstance(result, ProviderFailure):
        return error_response(result.status_code, result.error, result.provider_error)
    raise TypeError(f"Unexpected OTP flow result: {result!r}")


@router.get("/config/status", response_model=SmsConfigStatus)
async def config_status(config_manager: ConfigManager = Depends(get_config_manager)):
    config = await config_manager.load_config()
    return SmsConfigStatus(
        mode=config.mode,
        provider=config.provider,
        senderId=config.sender_id,
        enabledSend=config.send_enabled,
        enabledVerify=config.verify_enabled,
    )


@router.post("/sendOtp", response_model=SendOTPResponse, responses=ERROR_RESPONSES,
             dependencies=[Depends(otp_rate_limit)])
async def send_otp(payload: SendOTPRequest, otp_service: OTPService = Depends(get_otp_service)):
    try:
        result = await otp_service.send_otp(payload.phone, purpose=payload.purpose or "login")
    except Exception as e:
        logger.exception("sendOtp failed")
        await otp_service.log_internal_error(payload.phone, "send", e)
        return error_response(500, INTERNAL_ERROR)

    if isinstance(result, Sent):
        return SendOTPResponse(requestId=result.request_id, mode=result.mode)
    return _failure_response(result)


@router.post("/verifyOtp", response_model=VerifyOTPResponse, responses=ERROR_RESPONSES,
             dependencies=[Depends(otp_rate_limit)])
async def verify_otp(payload: VerifyOTPRequest, otp_service: OTPService = Depends(get_otp_service)):
    try:
        result = await otp_service.verify_otp(payload.phone, payload.request_id, payload.otp)
    except Exception as e:
        logger.exception("verifyOtp failed")
        await otp_service.log_internal_error(payload.phone, "verify", e, request_id=payload.request_id)
        return error_response(500, INTERNAL_ERROR)

    if isinstance(result, Verified):
        return VerifyOTPResponse()
    return _failure_response(result)


@router.post("/agent/upsert", response_model=AgentUpsertResponse, responses=ERROR_RESPONSES)
async def upsert_agent(payload: AgentUpsertRequest,
                       identity_service: IdentityService = Depends(get_identity_service)):
    try:
        result = await identity_service.ensure_agent_identity(payload.phone, payload.name)
    except Exception:
        logger.exception("agent upsert failed")
        return error_response(500, INTERNAL_ERROR)

    if isinstance(result, ProvisioningError):
        return error_response(result.status_code, result.error)
    return AgentUpsertResponse(email=result.email, password=result.password, userId=result.user_id)
