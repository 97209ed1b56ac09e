from pydantic import BaseModel, Field


class LoginIn(BaseModel):
    login: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class UserOut(BaseModel):
    id: int
    login: str
    full_name: str | None = None
    # permissions effective in this project (global roles included), or all when unset
    project_id: int | None = None
    permissions: list[str] = []
