from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: str
    password: str


class AdminCreateRequest(BaseModel):
    fullName: str
    email: EmailStr
    password: str
    role: str = "admin"
    department: str = ""


class PushTokenUpdate(BaseModel):
    token: str | None = None


class AuthAdmin(BaseModel):
    id: str
    fullName: str
    email: str
    role: str
    department: str = ""


class AuthResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
    admin: AuthAdmin
