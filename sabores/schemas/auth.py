from typing import Optional
from pydantic import BaseModel


# Campos opcionales: la falta de datos se responde con 400, no con 422
class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserInfo(BaseModel):
    username: str


class LoginResponse(BaseModel):
    success: bool
    token: str
    user: UserInfo


class VerifyResponse(BaseModel):
    valid: bool
    user: Optional[UserInfo] = None
