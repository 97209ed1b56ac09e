from sqlalchemy.orm import Session
from pcm.db.models.user import User
from pcm.core.security import hash_password
from pcm.schemas.admin import UserCreateIn


def get_user_by_login(db: Session, login: str) -> User | None:
    return db.query(User).filter(User.login == login).one_or_none()


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).one_or_none()


def list_users(db: Session):
    return db.query(User).order_by(User.login).all()


def create_user(db: Session, data: UserCreateIn) -> User:
    u = User(login=data.login, password_hash=hash_password(data.password), full_name=data.full_name)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def set_password_hash(db: Session, user: User, password_hash: str) -> User:
    user.password_hash = password_hash
    db.commit()
    return user


def set_active(db: Session, user: User, is_active: bool) -> User:
    user.is_active = is_active
    db.commit()
    db.refresh(user)
    return user
