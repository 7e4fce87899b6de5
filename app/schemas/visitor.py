from pydantic import BaseModel, EmailStr


class VisitorCreate(BaseModel):
    email: EmailStr
    fullName: str
    phone: str = ""
    company: str = ""
    photoUrl: str | None = None
    fcmToken: str | None = None
