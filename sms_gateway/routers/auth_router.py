from fastapi import APIRouter, Depends
import logging

from ..application.services.identity_service import IdentityService, EmailUpdateError
from ..dependencies import get_identity_service
from ..exceptions import error_response
from ..schemas import UpdateEmailRequest, UpdateEmailResponse, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/update-email",
    response_model=UpdateEmailResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def update_email(payload: UpdateEmailRequest,
                       identity_service: IdentityService = Depends(get_identity_service)):
    try:
        result = await identity_service.update_email(payload.user_id, payload.new_email)
    except Exception:
        logger.exception("update-email failed")
        return error_response(500, "Internal error")

    if isinstance(result, EmailUpdateError):
        return error_response(result.status_code, result.error)
    return UpdateEmailResponse(email=result.email)
