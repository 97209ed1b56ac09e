from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pcm.core.deps import get_db, require_permission
from pcm.core.errors import ConflictError, NotFoundError
from pcm.core.logging import logger
from pcm.crud.permissions import PROJECT_READ, PROJECT_WRITE
from pcm.db.models.user import User
from pcm.schemas.project import ProjectCreate, ProjectOut, ProjectUpdate
from pcm.crud.projects import create_project, get_project, get_project_by_code, list_projects_for_user, update_project

router = APIRouter()


@router.get("", response_model=list[ProjectOut])
def get_projects(db: Session = Depends(get_db), user: User = Depends(require_permission(PROJECT_READ))):
    return list_projects_for_user(db, user.id)


@router.post("", response_model=ProjectOut, status_code=201)
def post_project(data: ProjectCreate, db: Session = Depends(get_db), user: User = Depends(require_permission(PROJECT_WRITE))):
    if get_project_by_code(db, data.code):
        raise ConflictError(f"Project code {data.code} already exists", code="PROJECT_CODE_EXISTS")
    p = create_project(db, data)
    logger.info("project_created", project_id=p.id, code=p.code, user_id=user.id)
    return p


@router.put("/{project_id}", response_model=ProjectOut)
def put_project(
    project_id: int,
    data: ProjectUpdate,
    db: Session = Depends(get_db),
    _user=Depends(require_permission(PROJECT_WRITE)),
):
    p = get_project(db, project_id)
    if not p:
        raise NotFoundError("Project not found", code="PROJECT_NOT_FOUND")
    if data.code and data.code != p.code and get_project_by_code(db, data.code):
        raise ConflictError(f"Project code {data.code} already exists", code="PROJECT_CODE_EXISTS")
    return update_project(db, p, data)
