from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from pcm.db.session import SessionLocal
from pcm.core.errors import NotFoundError, PermissionDeniedError
from pcm.core.security import token_subject
from pcm.db.models.user import User
from pcm.crud.users import get_user_by_login
from pcm.crud.permissions import check_user_permission
from pcm.crud import wbs as wbs_crud
from pcm.crud import wbs_change_log as change_log_crud
from pcm.services.wbs.engine import WBSEngine

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    login = token_subject(token)
    if login is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = get_user_by_login(db, login)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found/disabled")
    return user

def _holds_any(db: Session, user_id: int, permissions: tuple[str, ...], project_id: int | None) -> bool:
    return any(check_user_permission(db, user_id, name, project_id) for name in permissions)

def require_permission(*permissions: str):
    """Allow the request if the user holds any of ``permissions``.

    A ``project_id`` path parameter, when the route has one, scopes the check
    to role assignments for that project (plus global ones).
    """
    def _dep(request: Request, db: Session = Depends(get_db), user: User = Depends(get_current_user)) -> User:
        raw = request.path_params.get("project_id")
        project_id = int(raw) if raw is not None and str(raw).isdigit() else None
        if _holds_any(db, user.id, permissions, project_id):
            return user
        raise PermissionDeniedError("Insufficient permissions")
    return _dep

def require_item_permission(*permissions: str):
    """Like ``require_permission`` for ``/wbs/items/{item_id}`` routes.

    The item's project scopes the check. A user with none of ``permissions``
    in any project gets 403 before the lookup; an id unknown to both the
    items table and the change log is 404. Deleted items resolve through
    their change log so history stays readable.
    """
    def _dep(item_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)) -> User:
        if not _holds_any(db, user.id, permissions, None):
            raise PermissionDeniedError("Insufficient permissions")
        item = wbs_crud.get_item(db, item_id)
        project_id = item.project_id if item is not None else change_log_crud.project_of_item(db, item_id)
        if project_id is None:
            raise NotFoundError("WBS item not found", code="ITEM_NOT_FOUND")
        if not _holds_any(db, user.id, permissions, project_id):
            raise PermissionDeniedError("Insufficient permissions")
        return user
    return _dep

def get_wbs_engine(db: Session = Depends(get_db)) -> WBSEngine:
    return WBSEngine(db)
