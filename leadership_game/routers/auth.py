# leadership_game/routers/auth.py
from fastapi import APIRouter, Depends, status
from pymongo.errors import DuplicateKeyError
from datetime import datetime
from typing import Optional
import logging

from leadership_game.authz import get_current_user, get_optional_user
from leadership_game.database import get_db, serialize_mongo_doc, to_object_id
from leadership_game.errors import Conflict, InvalidInput, NotFound
from leadership_game.models import CurrentUser, ProfileUpdate, Role, UserCreate, UserLogin
from leadership_game.security import PasswordHasher, create_access_token

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


async def insert_user(db, username: str, email: str, password: str, role: Role) -> dict:
    """Create a user after checking username and email are free."""
    existing_user = await db.users.find_one({"$or": [{"email": email}, {"username": username}]})
    if existing_user:
        raise Conflict("User with this email or username already exists")

    now = datetime.utcnow()
    user_dict = {
        "username": username,
        "email": email,
        "hashed_password": PasswordHasher.get_password_hash(password),
        "role": role.value,
        "createdAt": now,
        "updatedAt": now,
    }

    try:
        await db.users.insert_one(user_dict)
    except DuplicateKeyError:
        raise Conflict("User with this email or username already exists")

    return user_dict


async def apply_user_changes(db, user: dict, changes: ProfileUpdate) -> dict:
    """Build the $set document for a user update, enforcing unique username/email."""
    updates = {}

    if changes.username and changes.username != user["username"]:
        if await db.users.find_one({"username": changes.username}):
            raise Conflict("Username already taken")
        updates["username"] = changes.username

    if changes.email and changes.email != user["email"]:
        if await db.users.find_one({"email": changes.email}):
            raise Conflict("Email already taken")
        updates["email"] = changes.email

    if changes.password:
        updates["hashed_password"] = PasswordHasher.get_password_hash(changes.password)

    return updates


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user: UserCreate,
    caller: Optional[CurrentUser] = Depends(get_optional_user),
    db=Depends(get_db),
):
    """Handles user registration. Only an admin may choose a role other than participant."""
    role = Role.PARTICIPANT
    if user.role and caller and caller.is_admin:
        role = user.role

    user_dict = await insert_user(db, user.username, user.email, user.password, role)
    logger.info(f"Registered user '{user.username}' as {role.value}")

    return {"message": "User registered successfully", "user": serialize_mongo_doc(user_dict)}


@router.post("/login")
async def login(user: UserLogin, db=Depends(get_db)):
    """Handles user authentication."""
    logger.info(f"Login attempt for: {user.email}")

    db_user = await db.users.find_one({"email": user.email})

    if not db_user or not PasswordHasher.verify_password(user.password, db_user.get("hashed_password", "")):
        logger.warning(f"Login failed for: {user.email}")
        raise InvalidInput("Invalid credentials")

    await db.users.update_one(
        {"_id": db_user["_id"]},
        {"$set": {"lastLogin": datetime.utcnow()}}
    )

    token = create_access_token(db_user["_id"], db_user["role"])
    user_to_return = {
        "_id": db_user["_id"],
        "username": db_user["username"],
        "email": db_user["email"],
        "role": db_user["role"],
    }

    return {"token": token, "user": serialize_mongo_doc(user_to_return)}


@router.get("/profile")
async def get_profile(caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    user = await db.users.find_one({"_id": to_object_id(caller.id)})
    if not user:
        raise NotFound("User not found")
    return serialize_mongo_doc(user)


@router.put("/profile")
async def update_profile(
    changes: ProfileUpdate,
    caller: CurrentUser = Depends(get_current_user),
    db=Depends(get_db),
):
    user = await db.users.find_one({"_id": to_object_id(caller.id)})
    if not user:
        raise NotFound("User not found")

    updates = await apply_user_changes(db, user, changes)
    if updates:
        updates["updatedAt"] = datetime.utcnow()
        await db.users.update_one({"_id": user["_id"]}, {"$set": updates})
        user.update(updates)

    return serialize_mongo_doc(user)
