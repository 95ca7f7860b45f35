"""User management endpoints (admin only): create, list, get, update, delete."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.v1.auth import get_directory, require_role
from app.core.errors import NotFoundError
from app.core.security import UserRole, hash_password, join_roles
from app.models.user import User
from app.schemas.auth import UserCreateRequest, UserInfo
from app.services.users import UserDirectory

router = APIRouter(dependencies=[Depends(require_role(UserRole.ADMIN.value))])


def _to_entity(body: UserCreateRequest, user_id: int | None = None) -> User:
    """Build a detached User carrying the request values (password hashed)."""
    return User(
        id=user_id,
        name=body.username,
        password=hash_password(body.password),
        roles=join_roles(body.roles),
        version=body.version,
    )


@router.get("", response_model=list[UserInfo])
def list_users(
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> list[UserInfo] | Response:
    """All users ordered by name; 204 when there are none."""
    users = directory.find_all()
    if not users:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [UserInfo.from_user(u) for u in users]


@router.post("", response_model=UserInfo, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreateRequest,
    request: Request,
    response: Response,
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> UserInfo:
    """Create a user. 409 if the name is taken, 422 for unknown roles."""
    user = directory.create(_to_entity(body))
    response.headers["Location"] = f"{request.url.path.rstrip('/')}/id/{user.id}"
    return UserInfo.from_user(user)


@router.get("/role/{role}", response_model=list[UserInfo])
def list_users_by_role(
    role: str,
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> list[UserInfo]:
    """Users holding role, ordered by name (empty list when none match)."""
    return [UserInfo.from_user(u) for u in directory.find_all_by_role(role)]


@router.get("/id/{user_id}", response_model=UserInfo)
def get_user(
    user_id: int,
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> UserInfo:
    user = directory.find(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found.")
    return UserInfo.from_user(user)


@router.put("/id/{user_id}", response_model=UserInfo)
def update_user(
    user_id: int,
    body: UserCreateRequest,
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> UserInfo:
    """Replace name, password and roles. 404 if absent, 409 on stale version or taken name."""
    user = directory.update(_to_entity(body, user_id=user_id))
    return UserInfo.from_user(user)


@router.delete("/id/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> Response:
    """Delete a user (no error if absent). Tokens already issued stay valid until expiry."""
    directory.delete(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
