# leadership_game/authz.py
"""
Authorization guard: resolves the caller from the bearer token and answers
whether that caller may act on a given game, task or team.
"""
from enum import Enum
from typing import Optional
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError

from leadership_game.errors import Unauthenticated, InvalidCredential, Forbidden
from leadership_game.models import CurrentUser, Role
from leadership_game.security import decode_access_token, TokenError

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class Action(str, Enum):
    MANAGE = "manage"        # mutate or inspect a game/task as its owner
    GRADE = "grade"          # evaluate submissions of a game
    MEMBER = "member"        # act on behalf of a team
    VIEW_TEAM = "view_team"  # read a team's submissions and reflections


async def get_optional_user(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[CurrentUser]:
    """Resolve the caller when a bearer token is present, None otherwise."""
    if not token:
        return None

    try:
        payload = decode_access_token(token)
        return CurrentUser(id=payload["id"], role=payload["role"])
    except (TokenError, ValidationError) as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise InvalidCredential()


async def get_current_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise Unauthenticated()
    return user


def require_roles(*roles: Role):
    """Dependency factory rejecting callers whose role is not in roles."""
    allowed = set(roles)

    async def role_checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise Forbidden()
        return user

    return role_checker


def is_owner(caller: CurrentUser, resource: dict) -> bool:
    return caller.is_admin or str(resource.get("createdBy")) == caller.id


def is_member(caller: CurrentUser, team: dict) -> bool:
    return any(str(member) == caller.id for member in team.get("members", []))


def authorize(caller: CurrentUser, action: Action, resource: dict, game: Optional[dict] = None) -> bool:
    """
    Single capability check used by every router.

    MANAGE and GRADE take the game (or task) as resource, MEMBER takes the team,
    VIEW_TEAM takes the team plus its game.
    """
    if action == Action.MANAGE:
        return is_owner(caller, resource)
    if action == Action.GRADE:
        return caller.role in (Role.INSTRUCTOR, Role.ADMIN) and is_owner(caller, resource)
    if action == Action.MEMBER:
        return is_member(caller, resource)
    if action == Action.VIEW_TEAM:
        return is_member(caller, resource) or (game is not None and is_owner(caller, game)) or caller.is_admin
    return False


def ensure_authorized(caller: CurrentUser, action: Action, resource: dict, message: str, game: Optional[dict] = None):
    if not authorize(caller, action, resource, game=game):
        raise Forbidden(message)
