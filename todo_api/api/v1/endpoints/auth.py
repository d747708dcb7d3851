import re
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from datetime import timedelta
from typing import Optional

import structlog

from todo_api.api.deps import get_current_user, get_request_id
from todo_api.core.config import settings
from todo_api.core.errors import Conflict, Unauthorized, ValidationError
from todo_api.core.security import authenticate_user, create_access_token, get_password_hash
from todo_api.db.session import get_session
from todo_api.models.task import utcnow
from todo_api.models.user import User
from todo_api.schemas.envelope import ApiResponse, ok
from todo_api.schemas.user import AuthResult, UserCreate, UserLogin, UserRead

router = APIRouter()
logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def _auth_result(user: User) -> AuthResult:
    access_token = create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return AuthResult(access_token=access_token, user=UserRead.model_validate(user))


@router.post("/register", response_model=ApiResponse[AuthResult], status_code=status.HTTP_201_CREATED)
def register(
    user_create: UserCreate,
    session: Session = Depends(get_session),
    request_id: Optional[str] = Depends(get_request_id),
):
    if not EMAIL_PATTERN.match(user_create.email):
        raise ValidationError("Invalid email address")

    # Check if user exists
    user = session.exec(select(User).where(User.email == user_create.email)).first()
    if user:
        raise Conflict("Email already registered")

    db_user = User(
        email=user_create.email,
        password_hash=get_password_hash(user_create.password),
        name=user_create.name,
    )

    session.add(db_user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        session.rollback()
        raise Conflict("Email already registered")
    session.refresh(db_user)
    logger.info("user registered", user_id=str(db_user.id))
    return ok(_auth_result(db_user), request_id)


@router.post("/login", response_model=ApiResponse[AuthResult])
def login(
    user_credentials: UserLogin,
    session: Session = Depends(get_session),
    request_id: Optional[str] = Depends(get_request_id),
):
    user = authenticate_user(session, user_credentials.email, user_credentials.password)
    if user is None:
        raise Unauthorized("Incorrect email or password")

    user.last_login = utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    return ok(_auth_result(user), request_id)


@router.get("/me", response_model=ApiResponse[UserRead])
def get_current_user_profile(
    current_user: User = Depends(get_current_user),
    request_id: Optional[str] = Depends(get_request_id),
):
    return ok(UserRead.model_validate(current_user), request_id)
