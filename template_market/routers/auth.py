from fastapi import APIRouter, Depends, status

from template_market.models.user import User
from template_market.schemas.user import (
    EmailOnly,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateDetailsRequest,
    VerifyOtpRequest,
)
from template_market.services.auth_flow import AuthFlow, FlowResult, get_auth_flow
from template_market.services.auth_middleware import get_current_user
from template_market.utils.response import create_response, handle_exception

router = APIRouter(tags=["Auth"])


def _respond(result: FlowResult):
    data = result.data
    if result.user is not None:
        profile = ProfileResponse.model_validate(result.user).model_dump()
        data = {**data, "user": profile} if data else profile
    return create_response(message=result.message, data=data, status_code=result.status_code)


@router.post("/register")
def register(body: RegisterRequest, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        return _respond(flow.register(body.as_step()))
    except Exception as exc:
        return handle_exception(exc)


@router.post("/login")
def login(body: LoginRequest, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        return _respond(flow.login(body.as_step()))
    except Exception as exc:
        return handle_exception(exc)


@router.post("/verify-otp")
def verify_otp(body: VerifyOtpRequest, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        return _respond(flow.verify_otp(body.email, body.otp))
    except Exception as exc:
        return handle_exception(exc)


@router.post("/resend-otp")
def resend_otp(body: EmailOnly, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        return _respond(flow.resend_otp(body.email))
    except Exception as exc:
        return handle_exception(exc)


@router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    flow: AuthFlow = Depends(get_auth_flow)
):
    try:
        return _respond(flow.logout(current_user))
    except Exception as exc:
        return handle_exception(exc)


@router.post("/forget-password")
def forget_password(body: EmailOnly, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        return _respond(flow.forgot_password(body.email))
    except Exception as exc:
        return handle_exception(exc)


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, flow: AuthFlow = Depends(get_auth_flow)):
    try:
        return _respond(flow.reset_password(body))
    except Exception as exc:
        return handle_exception(exc)


@router.put("/update-details")
def update_details(
    body: UpdateDetailsRequest,
    current_user: User = Depends(get_current_user),
    flow: AuthFlow = Depends(get_auth_flow)
):
    try:
        return _respond(flow.update_details(current_user, body))
    except Exception as exc:
        return handle_exception(exc)
