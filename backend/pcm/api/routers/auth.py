from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pcm.core.config import settings
from pcm.core.deps import get_db, get_current_user
from pcm.core.logging import logger
from pcm.schemas.auth import LoginIn, TokenOut, UserOut
from pcm.crud.users import get_user_by_login, set_password_hash
from pcm.crud.permissions import list_user_permissions
from pcm.core.security import verify_password, create_access_token

router = APIRouter()


@router.post("/login", response_model=TokenOut)
def login(data: LoginIn, db: Session = Depends(get_db)):
    user = get_user_by_login(db, data.login)
    ok, new_hash = verify_password(data.password, user.password_hash) if user and user.is_active else (False, None)
    if not ok:
        logger.warning("login_failed", login=data.login)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if new_hash:
        set_password_hash(db, user, new_hash)
    token = create_access_token(sub=user.login, user_id=user.id)
    logger.info("login_ok", user_id=user.id)
    return TokenOut(access_token=token, expires_in=settings.JWT_EXPIRES_MIN * 60)


@router.get("/me", response_model=UserOut)
def me(
    project_id: int | None = Query(None),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    return UserOut(
        id=user.id,
        login=user.login,
        full_name=user.full_name,
        project_id=project_id,
        permissions=list_user_permissions(db, user.id, project_id),
    )
