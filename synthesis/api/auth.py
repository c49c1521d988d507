"""API endpoint for the sign-in notification side channel."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from synthesis.core.notifications import notify_sign_in

router = APIRouter(prefix="/auth", tags=["auth"])


class SignInNotice(BaseModel):
    user_name: str | None = None
    user_email: str | None = None


@router.post("/notify-signin")
async def notify_signin(data: SignInNotice) -> dict:
    """Best-effort notice; delivery failures are logged, not raised."""
    if not data.user_email:
        raise HTTPException(status_code=400, detail="User email is required")
    sent = await notify_sign_in(data.user_name, data.user_email)
    return {"success": sent}
