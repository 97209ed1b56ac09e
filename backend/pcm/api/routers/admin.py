from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pcm.core.deps import get_db, require_permission
from pcm.core.errors import ConflictError, NotFoundError
from pcm.crud.permissions import (
    ADMIN_ROLES,
    ADMIN_USERS,
    assign_role,
    create_role,
    get_role,
    get_role_by_name,
    list_roles,
    list_user_roles,
    set_role_permissions,
)
from pcm.crud.projects import get_project
from pcm.crud.users import create_user, get_user, get_user_by_login, list_users, set_active
from pcm.db.models.permission import Role
from pcm.schemas.admin import (
    AdminUserOut,
    AdminUserUpdate,
    RoleCreateIn,
    RoleOut,
    RolePermissionsIn,
    UserCreateIn,
    UserRoleIn,
    UserRoleOut,
)

router = APIRouter()


def _role_out(role: Role) -> RoleOut:
    return RoleOut(
        id=role.id,
        name=role.name,
        description=role.description,
        permissions=[p.name for p in role.permissions],
    )


@router.get("/users", response_model=list[AdminUserOut])
def users(db: Session = Depends(get_db), _user=Depends(require_permission(ADMIN_USERS))):
    return list_users(db)

@router.post("/users", response_model=AdminUserOut, status_code=201)
def create_user_endpoint(data: UserCreateIn, db: Session = Depends(get_db), _user=Depends(require_permission(ADMIN_USERS))):
    if get_user_by_login(db, data.login):
        raise ConflictError("Login already exists", code="LOGIN_EXISTS")
    return create_user(db, data)


@router.patch("/users/{user_id}", response_model=AdminUserOut)
def update_user_endpoint(
    user_id: int,
    data: AdminUserUpdate,
    db: Session = Depends(get_db),
    _user=Depends(require_permission(ADMIN_USERS)),
):
    u = get_user(db, user_id)
    if not u:
        raise NotFoundError("User not found")
    return set_active(db, u, data.is_active)


@router.get("/users/{user_id}/roles", response_model=list[UserRoleOut])
def user_roles(user_id: int, db: Session = Depends(get_db), _user=Depends(require_permission(ADMIN_USERS))):
    if not get_user(db, user_id):
        raise NotFoundError("User not found")
    return list_user_roles(db, user_id)


@router.post("/users/{user_id}/roles", response_model=UserRoleOut, status_code=201)
def assign_user_role(
    user_id: int,
    data: UserRoleIn,
    db: Session = Depends(get_db),
    _user=Depends(require_permission(ADMIN_USERS)),
):
    if not get_user(db, user_id):
        raise NotFoundError("User not found")
    if not get_role(db, data.role_id):
        raise NotFoundError("Role not found")
    if data.project_id is not None and not get_project(db, data.project_id):
        raise NotFoundError("Project not found", code="PROJECT_NOT_FOUND")
    return assign_role(db, user_id, data.role_id, data.project_id)


@router.get("/roles", response_model=list[RoleOut])
def roles(db: Session = Depends(get_db), _user=Depends(require_permission(ADMIN_ROLES))):
    return [_role_out(r) for r in list_roles(db)]


@router.post("/roles", response_model=RoleOut, status_code=201)
def create_role_endpoint(data: RoleCreateIn, db: Session = Depends(get_db), _user=Depends(require_permission(ADMIN_ROLES))):
    if get_role_by_name(db, data.name):
        raise ConflictError("Role already exists", code="ROLE_EXISTS")
    return _role_out(create_role(db, data.name, data.description, data.permissions))


@router.put("/roles/{role_id}/permissions", response_model=RoleOut)
def put_role_permissions(
    role_id: int,
    data: RolePermissionsIn,
    db: Session = Depends(get_db),
    _user=Depends(require_permission(ADMIN_ROLES)),
):
    role = get_role(db, role_id)
    if not role:
        raise NotFoundError("Role not found")
    return _role_out(set_role_permissions(db, role, data.permissions))
