from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class VerifyRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None


class VerifyConfirmRequest(BaseModel):
    email: EmailStr
    otp: str


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Literal["user", "admin"]] = None
    balance: Optional[int] = Field(None, ge=0)
    sharedPoints: Optional[int] = Field(None, ge=0)
    isTopPerformer: Optional[bool] = None


class BalanceUpdate(BaseModel):
    balance: int = Field(..., ge=0)


class ChangePasswordRequest(BaseModel):
    old: str
    new: str = Field(..., min_length=8, max_length=72)


class SendPointsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: Literal["email", "wallet"]
    rcv_address: str = Field(..., min_length=1, description="Recipient email or wallet address, per mode")
    # Accepted as numeric text or number; coerced and validated by the transfer engine
    value: Any = None
    private_key: str = Field(..., alias="privateKey", min_length=1)
    snd_address: Optional[str] = None


class NotificationIn(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
