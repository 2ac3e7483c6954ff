"""
dsa_mentor/schemas/auth.py
Pydantic schemas for registration, login, second factor and account views
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from dsa_mentor.orm.account import PreferredLanguage


# ================= REQUEST SCHEMAS =================

class AccountRegister(BaseModel):
    """
    Registration payload.

    Password length and blank names are checked by the credential service so
    they surface as INVALID_INPUT rather than a schema error.
    """
    email: EmailStr
    password: str
    name: str
    preferred_language: Optional[PreferredLanguage] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "email": "learner@example.com",
            "password": "correct-horse",
            "name": "Ada",
            "preferred_language": "Python"
        }
    })


class AccountLogin(BaseModel):
    """JSON login schema. `mfa_code` is only needed once the second factor is active."""
    email: EmailStr
    password: str
    mfa_code: Optional[str] = Field(None, description="6-digit TOTP code")


class MfaVerifyRequest(BaseModel):
    code: str = Field(..., description="6-digit TOTP code from the authenticator app")


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


# ================= RESPONSE SCHEMAS =================

class AccountResponse(BaseModel):
    """Public account view - never carries the hash or TOTP secrets."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    preferred_language: PreferredLanguage
    mfa_enabled: bool
    current_day: int
    streak: int
    last_active_date: Optional[date] = None
    total_problems_completed: int
    join_date: datetime


class AuthResponse(BaseModel):
    """Register/login response. On login with an active second factor and no code, only requires_mfa is set."""
    message: str
    access_token: Optional[str] = None
    token_type: str = "bearer"
    requires_mfa: bool = False
    account: Optional[AccountResponse] = None


class MeResponse(BaseModel):
    account: AccountResponse


class MfaSetupResponse(BaseModel):
    secret: str
    manual_entry_key: str
    provisioning_uri: str


class MfaVerifyResponse(BaseModel):
    message: str
    mfa_enabled: bool


class MessageResponse(BaseModel):
    success: bool = True
    message: str
