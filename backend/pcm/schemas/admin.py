from pydantic import BaseModel, ConfigDict, Field

class UserCreateIn(BaseModel):
    login: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str | None = None


class AdminUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    login: str
    full_name: str | None = None
    is_active: bool


class RoleCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    description: str | None = None
    permissions: list[str] = []


class RoleOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    permissions: list[str] = []


class RolePermissionsIn(BaseModel):
    permissions: list[str]


class UserRoleIn(BaseModel):
    role_id: int
    project_id: int | None = None


class UserRoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    role_id: int
    project_id: int | None = None


class AdminUserUpdate(BaseModel):
    is_active: bool
