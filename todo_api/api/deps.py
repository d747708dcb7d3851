from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from todo_api.core.errors import Unauthorized
from todo_api.core.security import decode_access_token
from todo_api.db.session import get_session
from todo_api.models.user import User
from todo_api.services.task_store import TaskStore


# auto_error=False so a missing header goes through the envelope error handler
security = HTTPBearer(auto_error=False)


def get_current_user(
    token: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session),
) -> User:
    if token is None:
        raise Unauthorized("Authentication token is missing")

    user_id = decode_access_token(token.credentials)
    user = session.get(User, user_id)

    if user is None or not user.is_active:
        raise Unauthorized()

    return user


def get_task_store(session: Session = Depends(get_session)) -> TaskStore:
    return TaskStore(session)


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)
