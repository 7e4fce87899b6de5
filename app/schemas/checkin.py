from pydantic import BaseModel


class QRValidateRequest(BaseModel):
    qrData: str
    location: str = ""


class QRVerifyRequest(BaseModel):
    qrData: str


class CheckOutRequest(BaseModel):
    visitId: str
    visitorId: str | None = None
    location: str = ""
