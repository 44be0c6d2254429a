# leadership_game/routers/admin.py
from fastapi import APIRouter, Depends, Response, status
from pymongo import ASCENDING
from datetime import datetime
import logging

from leadership_game.authz import Action, ensure_authorized, require_roles
from leadership_game.database import get_db, populate, populate_all, serialize_mongo_doc
from leadership_game.export import build_game_csv, export_filename
from leadership_game.models import AdminUserUpdate, CurrentUser, Role, UserCreate
from .auth import apply_user_changes, insert_user
from .helpers import find_or_404

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)

admin_only = require_roles(Role.ADMIN)


@router.get("/users")
async def list_users(caller: CurrentUser = Depends(admin_only), db=Depends(get_db)):
    users = await db.users.find().sort("username", ASCENDING).to_list(length=None)
    return serialize_mongo_doc(users)


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(user: UserCreate, caller: CurrentUser = Depends(admin_only), db=Depends(get_db)):
    user_dict = await insert_user(db, user.username, user.email, user.password, user.role or Role.PARTICIPANT)
    logger.info(f"Admin '{caller.id}' created user '{user.username}' as {user_dict['role']}")
    return serialize_mongo_doc(user_dict)


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    changes: AdminUserUpdate,
    caller: CurrentUser = Depends(admin_only),
    db=Depends(get_db),
):
    user = await find_or_404(db.users, user_id, "User not found")

    updates = await apply_user_changes(db, user, changes)
    if changes.role:
        updates["role"] = changes.role.value

    if updates:
        updates["updatedAt"] = datetime.utcnow()
        await db.users.update_one({"_id": user["_id"]}, {"$set": updates})
        user.update(updates)

    return serialize_mongo_doc(user)


@router.get("/stats")
async def get_stats(caller: CurrentUser = Depends(admin_only), db=Depends(get_db)):
    """System-wide counters for the admin dashboard."""
    return {
        "userCount": await db.users.count_documents({}),
        "gameCount": await db.games.count_documents({}),
        "activeGameCount": await db.games.count_documents({"isActive": True}),
        "teamCount": await db.teams.count_documents({}),
        "submissionCount": await db.submissions.count_documents({}),
        "pendingSubmissionCount": await db.submissions.count_documents({"isEvaluated": False}),
    }


@router.get("/export/games/{game_id}")
async def export_game(
    game_id: str,
    caller: CurrentUser = Depends(require_roles(Role.ADMIN, Role.INSTRUCTOR)),
    db=Depends(get_db),
):
    game = await find_or_404(db.games, game_id, "Game not found")
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to export this game")

    teams = await db.teams.find({"game": game["_id"]}).to_list(length=None)
    await populate_all(db, teams, "members", "users", ["username"])
    tasks = await db.tasks.find({"game": game["_id"]}).to_list(length=None)
    submissions = await db.submissions.find(
        {"task": {"$in": [task["_id"] for task in tasks]}}
    ).to_list(length=None)
    reflections = await db.reflections.find({"game": game["_id"]}).to_list(length=None)

    await populate(db, game, "createdBy", "users", ["username"])
    creator = (game.get("createdBy") or {}).get("username", "N/A")

    content = build_game_csv(game, creator, teams, tasks, submissions, reflections)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(game)}"'},
    )
