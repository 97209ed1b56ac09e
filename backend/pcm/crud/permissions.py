from sqlalchemy import or_
from sqlalchemy.orm import Session

from pcm.db.models.permission import Permission, Role, RolePermission, UserRole
from pcm.db.models.user import User


WBS_READ = "wbs.read"
WBS_CREATE = "wbs.create"
WBS_WRITE = "wbs.write"
WBS_UPDATE = "wbs.update"
WBS_DELETE = "wbs.delete"
PROJECT_READ = "project.read"
PROJECT_WRITE = "project.write"
ADMIN_USERS = "admin.users"
ADMIN_ROLES = "admin.roles"

STANDARD_PERMISSIONS: dict[str, str] = {
    WBS_READ: "View WBS trees and change history",
    WBS_CREATE: "Create WBS items",
    WBS_WRITE: "Create and edit WBS items",
    WBS_UPDATE: "Edit and reorder WBS items",
    WBS_DELETE: "Delete WBS items",
    PROJECT_READ: "View projects",
    PROJECT_WRITE: "Create and edit projects",
    ADMIN_USERS: "Manage users and their role assignments",
    ADMIN_ROLES: "Manage roles and permissions",
}


def _granted_query(db: Session, user_id: int, project_id: int | None):
    q = (
        db.query(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .join(User, User.id == UserRole.user_id)
        .filter(UserRole.user_id == user_id, User.is_active.is_(True))
    )
    if project_id is not None:
        q = q.filter(or_(UserRole.project_id == project_id, UserRole.project_id.is_(None)))
    return q


def check_user_permission(db: Session, user_id: int, permission: str, project_id: int | None = None) -> bool:
    q = _granted_query(db, user_id, project_id).filter(Permission.name == permission)
    return q.first() is not None


def list_user_permissions(db: Session, user_id: int, project_id: int | None = None) -> list[str]:
    rows = _granted_query(db, user_id, project_id).distinct().all()
    return sorted(r[0] for r in rows)


def get_or_create_permission(db: Session, name: str, description: str | None = None) -> Permission:
    p = db.query(Permission).filter(Permission.name == name).one_or_none()
    if p:
        return p
    p = Permission(name=name, description=description or STANDARD_PERMISSIONS.get(name))
    db.add(p)
    db.flush()
    return p


def get_role(db: Session, role_id: int) -> Role | None:
    return db.query(Role).filter(Role.id == role_id).one_or_none()


def get_role_by_name(db: Session, name: str) -> Role | None:
    return db.query(Role).filter(Role.name == name).one_or_none()


def list_roles(db: Session):
    return db.query(Role).order_by(Role.id).all()


def create_role(db: Session, name: str, description: str | None = None, permissions: list[str] | None = None) -> Role:
    role = Role(name=name, description=description)
    db.add(role)
    db.flush()
    for perm_name in permissions or []:
        perm = get_or_create_permission(db, perm_name)
        db.add(RolePermission(role_id=role.id, permission_id=perm.id))
    db.commit()
    db.refresh(role)
    return role


def set_role_permissions(db: Session, role: Role, permissions: list[str]) -> Role:
    db.query(RolePermission).filter(RolePermission.role_id == role.id).delete()
    for perm_name in sorted(set(permissions)):
        perm = get_or_create_permission(db, perm_name)
        db.add(RolePermission(role_id=role.id, permission_id=perm.id))
    db.commit()
    db.refresh(role)
    return role


def assign_role(db: Session, user_id: int, role_id: int, project_id: int | None = None) -> UserRole:
    existing = (
        db.query(UserRole)
        .filter(
            UserRole.user_id == user_id,
            UserRole.role_id == role_id,
            UserRole.project_id.is_(None) if project_id is None else UserRole.project_id == project_id,
        )
        .one_or_none()
    )
    if existing:
        return existing
    ur = UserRole(user_id=user_id, role_id=role_id, project_id=project_id)
    db.add(ur)
    db.commit()
    db.refresh(ur)
    return ur


def list_user_roles(db: Session, user_id: int):
    return db.query(UserRole).filter(UserRole.user_id == user_id).order_by(UserRole.id).all()
