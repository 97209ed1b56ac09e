from sqlalchemy.orm import Session
from pcm.db.models.project import Project
from pcm.db.models.permission import UserRole
from pcm.schemas.project import ProjectCreate, ProjectUpdate


def list_projects(db: Session):
    return db.query(Project).order_by(Project.code, Project.id).all()


def list_projects_for_user(db: Session, user_id: int):
    """Projects the user has a project-scoped role in, or all of them with a global role."""
    scopes = {r.project_id for r in db.query(UserRole.project_id).filter(UserRole.user_id == user_id)}
    if None in scopes:
        return list_projects(db)
    if not scopes:
        return []
    return db.query(Project).filter(Project.id.in_(scopes)).order_by(Project.code, Project.id).all()


def get_project(db: Session, project_id: int) -> Project | None:
    return db.query(Project).filter(Project.id == project_id).one_or_none()


def get_project_by_code(db: Session, code: str) -> Project | None:
    return db.query(Project).filter(Project.code == code).one_or_none()


def create_project(db: Session, data: ProjectCreate) -> Project:
    p = Project(**data.model_dump())
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


def update_project(db: Session, p: Project, data: ProjectUpdate) -> Project:
    # only fields present in the request; an explicit null clears the description
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field != "description":
            continue
        setattr(p, field, value)
    db.commit()
    db.refresh(p)
    return p
