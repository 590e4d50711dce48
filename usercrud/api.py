"""FastAPI application exposing the user registry over HTTP."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response, status
from pydantic import BaseModel, StrictInt

from .models import ErrorKind, OperationResult, UserRecord
from .store import InMemoryRepository, UserStore

logger = logging.getLogger("usercrud.api")

# starlette renamed the 422 constant; the numeric code is stable
_UNPROCESSABLE = 422

_STATUS_BY_ERROR: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_NAME: _UNPROCESSABLE,
    ErrorKind.INVALID_AGE: _UNPROCESSABLE,
    ErrorKind.INVALID_EMAIL: _UNPROCESSABLE,
    ErrorKind.PARSE_ERROR: _UNPROCESSABLE,
    ErrorKind.DUPLICATE_EMAIL: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.STORAGE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class UserPayload(BaseModel):
    name: str
    age: StrictInt
    email: str


class UserResponse(BaseModel):
    id: int
    name: str
    age: int
    email: str
    registered_at: datetime
    updated_at: Optional[datetime]


class UserListResponse(BaseModel):
    users: List[UserResponse]


def user_to_response(user: UserRecord) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        age=user.age,
        email=user.email,
        registered_at=user.registered_at,
        updated_at=user.updated_at,
    )


def _unwrap(result: OperationResult):
    if result.error is not None:
        raise HTTPException(
            status_code=_STATUS_BY_ERROR[result.error],
            detail={"error": result.error.value, "message": result.detail},
        )
    return result.value


def create_app(*, store: UserStore | None = None) -> FastAPI:
    if store is None:
        store = UserStore(InMemoryRepository())

    app = FastAPI(
        title="User Registry",
        description="Create, list, edit and delete registered users",
        version="1.0.0",
    )
    app.state.store = store

    def get_store() -> UserStore:
        return store

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/v1/users", response_model=UserListResponse)
    def list_users(
        q: Optional[str] = Query(default=None),
        users: UserStore = Depends(get_store),
    ) -> UserListResponse:
        result = users.list() if q is None else users.find(q)
        return UserListResponse(users=[user_to_response(user) for user in _unwrap(result)])

    @app.post("/v1/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    def create_user(payload: UserPayload, users: UserStore = Depends(get_store)) -> UserResponse:
        record = _unwrap(users.add(payload.name, payload.age, payload.email))
        logger.info("User %s created via API", record.id)
        return user_to_response(record)

    @app.get("/v1/users/{user_id}", response_model=UserResponse)
    def get_user(user_id: int, users: UserStore = Depends(get_store)) -> UserResponse:
        return user_to_response(_unwrap(users.get(user_id)))

    @app.put("/v1/users/{user_id}", response_model=UserResponse)
    def update_user(
        user_id: int,
        payload: UserPayload,
        users: UserStore = Depends(get_store),
    ) -> UserResponse:
        record = _unwrap(users.edit(user_id, payload.name, payload.age, payload.email))
        return user_to_response(record)

    @app.delete("/v1/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_user(user_id: int, users: UserStore = Depends(get_store)) -> Response:
        _unwrap(users.delete(user_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["UserPayload", "UserResponse", "create_app", "user_to_response"]
