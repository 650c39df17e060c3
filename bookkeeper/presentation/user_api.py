from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from bookkeeper.data.repositories.record_store import RecordStore
from bookkeeper.domain.models import Session
from bookkeeper.domain.services.auth_service import (
    create_user,
    list_users,
    login,
    logout,
)
from bookkeeper.presentation.dependencies import (
    get_current_session,
    get_store,
    oauth2_scheme,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class UserResponse(BaseModel):
    id: str
    username: str
    is_admin: bool


class UserCreateRequest(BaseModel):
    username: str
    password: str
    is_admin: bool = False


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


@router.post("/token", response_model=TokenResponse)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    store: RecordStore = Depends(get_store),
):
    session = login(store, form_data.username, form_data.password)
    return TokenResponse(
        access_token=session.id,
        user=UserResponse(
            id=session.user_id, username=session.username, is_admin=session.is_admin
        ),
    )


@router.post("/logout")
def logout_endpoint(
    token: Optional[str] = Depends(oauth2_scheme),
    store: RecordStore = Depends(get_store),
):
    if token:
        logout(store, token)
    return {"success": True}


@router.get("/me", response_model=Optional[UserResponse])
def read_current_user(session: Optional[Session] = Depends(get_current_session)):
    if session is None:
        return None
    return UserResponse(
        id=session.user_id, username=session.username, is_admin=session.is_admin
    )


@router.post("/users", response_model=UserResponse)
def create_user_endpoint(
    req: UserCreateRequest,
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    try:
        user = create_user(store, session, req.username, req.password, req.is_admin)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserResponse(**user.public())


@router.get("/users", response_model=List[UserResponse])
def list_users_endpoint(
    store: RecordStore = Depends(get_store),
    session: Optional[Session] = Depends(get_current_session),
):
    return [UserResponse(**u.public()) for u in list_users(store, session)]
