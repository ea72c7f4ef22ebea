from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SessionClaims(BaseModel):
    user_id: int
    email: str

# Sign-up/sign-in bodies are validated by hand so the messages match the UI
class SignUpIn(CamelModel):
    email: str | None = None
    name: str | None = None
    password: str | None = None
    country: str | None = None
    terms: bool | str | None = None
    captcha: str | int | None = None
    captcha_answer: str | int | None = Field(default=None, alias="captchaAnswer")

class SignInIn(BaseModel):
    email: str | None = None
    password: str | None = None
    remember: bool = False

class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    plan: str | None = None

    model_config = ConfigDict(from_attributes=True)

class MeUserOut(BaseModel):
    id: int
    email: str
    full_name: str
    subscribed: bool

    model_config = ConfigDict(from_attributes=True)

class SignUpOut(BaseModel):
    success: bool
    redirect: str

class SignInOut(BaseModel):
    success: bool
    user: UserOut
    token: str
    redirect: str

class MeOut(BaseModel):
    user: MeUserOut

class SuccessOut(BaseModel):
    success: bool

class ShortenIn(CamelModel):
    original_url: str = Field(alias="originalUrl", min_length=1, max_length=2048)

class ShortenOut(CamelModel):
    code: str
    short_url: str = Field(alias="shortUrl")

class ShortLinkStats(CamelModel):
    code: str
    original_url: str = Field(alias="originalUrl")
    click_count: int = Field(alias="clickCount")
    created_at: datetime | None = Field(default=None, alias="createdAt")
