from sqlalchemy.orm import Session
from pcm.db.session import SessionLocal
from pcm.core.config import settings
from pcm.core.logging import logger
from pcm.crud.users import get_user_by_login, create_user
from pcm.schemas.admin import UserCreateIn
from pcm.crud.permissions import (
    STANDARD_PERMISSIONS,
    PROJECT_READ,
    PROJECT_WRITE,
    WBS_READ,
    assign_role,
    create_role,
    get_or_create_permission,
    get_role_by_name,
)
from pcm.crud.projects import list_projects, create_project
from pcm.schemas.project import ProjectCreate

DEFAULT_ROLES: dict[str, tuple[str, list[str]]] = {
    "Admin": ("Full access", sorted(STANDARD_PERMISSIONS)),
    "Manager": (
        "Project manager: edits WBS and projects",
        sorted(p for p in STANDARD_PERMISSIONS if p.startswith("wbs.")) + [PROJECT_READ, PROJECT_WRITE],
    ),
    "Viewer": ("Read-only access", [WBS_READ, PROJECT_READ]),
}


def seed_permissions(db: Session) -> None:
    for name, description in STANDARD_PERMISSIONS.items():
        get_or_create_permission(db, name, description)
    db.commit()
    for role_name, (description, perms) in DEFAULT_ROLES.items():
        if not get_role_by_name(db, role_name):
            create_role(db, role_name, description, perms)


def seed_demo(db: Session | None = None):
    own_session = db is None
    db = db or SessionLocal()
    try:
        seed_permissions(db)
        if settings.DEMO_ADMIN_LOGIN and settings.DEMO_ADMIN_PASSWORD:
            u = get_user_by_login(db, settings.DEMO_ADMIN_LOGIN)
            if not u:
                u = create_user(db, UserCreateIn(
                    login=settings.DEMO_ADMIN_LOGIN,
                    password=settings.DEMO_ADMIN_PASSWORD,
                    full_name="Demo Admin",
                ))
                assign_role(db, u.id, get_role_by_name(db, "Admin").id)
                logger.info("demo_admin_created", login=u.login)
        # Create default project if none
        if not list_projects(db):
            create_project(db, ProjectCreate(code="PRJ-1", name="Demo Project", description="Seeded demo project"))
    finally:
        if own_session:
            db.close()
