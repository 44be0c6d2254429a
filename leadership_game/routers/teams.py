# leadership_game/routers/teams.py
from fastapi import APIRouter, Depends, status
from pymongo import ASCENDING, DESCENDING
from datetime import datetime
import logging

from leadership_game import cascade
from leadership_game.authz import Action, ensure_authorized, get_current_user, require_roles
from leadership_game.database import get_db, populate, populate_all, serialize_mongo_doc, to_object_id
from leadership_game.errors import Conflict, InternalError
from leadership_game.models import CurrentUser, Role, TeamCreate, TeamMemberAdd, TeamUpdate
from .helpers import find_or_404, hide_answer

router = APIRouter(prefix="/api/teams", tags=["teams"])
logger = logging.getLogger(__name__)


async def load_team(db, team_id) -> dict:
    team = await db.teams.find_one({"_id": team_id})
    await populate(db, team, "members", "users", ["username"])
    await populate(db, team, "game", "games", ["title"])
    return team


async def add_member(db, team: dict, user_id) -> dict:
    """Add a user to a team, keeping every user in at most one team per game."""
    if user_id in team.get("members", []):
        raise Conflict("Already a member of this team")

    if await db.teams.find_one({"game": team["game"], "members": user_id}):
        raise Conflict("Already a member of another team in this game")

    await db.teams.update_one(
        {"_id": team["_id"]},
        {"$addToSet": {"members": user_id}, "$set": {"updatedAt": datetime.utcnow()}},
    )
    return await load_team(db, team["_id"])


async def game_of(db, team: dict) -> dict:
    game = await db.games.find_one({"_id": team["game"]})
    if game is None:
        logger.error(f"Team '{team['_id']}' references a missing game")
        raise InternalError("Team references a missing game")
    return game


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_team(team: TeamCreate, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    """Create a team in a game with the caller as its first member."""
    game = await find_or_404(db.games, team.game, "Game not found")
    user_id = to_object_id(caller.id)

    if await db.teams.find_one({"game": game["_id"], "members": user_id}):
        raise Conflict("Already a member of another team in this game")

    now = datetime.utcnow()
    team_dict = {
        "name": team.name,
        "game": game["_id"],
        "members": [user_id],
        "points": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db.teams.insert_one(team_dict)

    logger.info(f"Team '{team.name}' created in game '{game['title']}'")
    return serialize_mongo_doc(await load_team(db, result.inserted_id))


@router.get("")
async def list_teams(caller: CurrentUser = Depends(require_roles(Role.ADMIN)), db=Depends(get_db)):
    teams = await db.teams.find().sort("createdAt", DESCENDING).to_list(length=None)
    await populate_all(db, teams, "members", "users", ["username"])
    await populate_all(db, teams, "game", "games", ["title"])
    return serialize_mongo_doc(teams)


@router.get("/user")
async def list_user_teams(caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    """Teams the caller belongs to."""
    teams = await db.teams.find({"members": to_object_id(caller.id)}).sort(
        "createdAt", DESCENDING
    ).to_list(length=None)
    await populate_all(db, teams, "game", "games", ["title", "accessCode", "isActive"])
    return serialize_mongo_doc(teams)


@router.get("/{team_id}")
async def get_team(team_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    team = await find_or_404(db.teams, team_id, "Team not found")
    return serialize_mongo_doc(await load_team(db, team["_id"]))


@router.put("/{team_id}")
async def rename_team(
    team_id: str,
    changes: TeamUpdate,
    caller: CurrentUser = Depends(get_current_user),
    db=Depends(get_db),
):
    team = await find_or_404(db.teams, team_id, "Team not found")
    game = await game_of(db, team)
    ensure_authorized(caller, Action.VIEW_TEAM, team, "Not authorized to update this team", game=game)

    await db.teams.update_one(
        {"_id": team["_id"]},
        {"$set": {"name": changes.name, "updatedAt": datetime.utcnow()}},
    )
    return serialize_mongo_doc(await load_team(db, team["_id"]))


@router.delete("/{team_id}")
async def delete_team(
    team_id: str,
    caller: CurrentUser = Depends(require_roles(Role.INSTRUCTOR, Role.ADMIN)),
    db=Depends(get_db),
):
    team = await find_or_404(db.teams, team_id, "Team not found")
    game = await game_of(db, team)
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to delete this team")

    await cascade.delete_team(db, team)
    return {"message": "Team deleted successfully"}


@router.post("/{team_id}/join")
async def join_team(team_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    team = await find_or_404(db.teams, team_id, "Team not found")
    updated = await add_member(db, team, to_object_id(caller.id))
    logger.info(f"User '{caller.id}' joined team '{team['name']}'")
    return serialize_mongo_doc(updated)


@router.post("/{team_id}/members")
async def add_team_member(
    team_id: str,
    member: TeamMemberAdd,
    caller: CurrentUser = Depends(require_roles(Role.INSTRUCTOR, Role.ADMIN)),
    db=Depends(get_db),
):
    """Place a user directly into a team; reserved for the game's owner."""
    team = await find_or_404(db.teams, team_id, "Team not found")
    game = await game_of(db, team)
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to manage this team")

    user = await find_or_404(db.users, member.user, "User not found")
    updated = await add_member(db, team, user["_id"])
    logger.info(f"User '{user['username']}' added to team '{team['name']}'")
    return serialize_mongo_doc(updated)


@router.get("/{team_id}/submissions")
async def get_team_submissions(team_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    team = await find_or_404(db.teams, team_id, "Team not found")
    game = await game_of(db, team)
    ensure_authorized(caller, Action.VIEW_TEAM, team, "Not authorized to view team submissions", game=game)

    submissions = await db.submissions.find({"team": team["_id"]}).sort(
        "submittedAt", DESCENDING
    ).to_list(length=None)
    await populate_all(db, submissions, "task", "tasks")
    for submission in submissions:
        if submission.get("task"):
            hide_answer(submission["task"], caller, game)
    return serialize_mongo_doc(submissions)


@router.get("/{team_id}/reflections")
async def get_team_reflections(team_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    team = await find_or_404(db.teams, team_id, "Team not found")
    game = await game_of(db, team)
    ensure_authorized(caller, Action.VIEW_TEAM, team, "Not authorized to view team reflections", game=game)

    reflections = await db.reflections.find({"team": team["_id"]}).sort("createdAt", ASCENDING).to_list(length=None)
    return serialize_mongo_doc(reflections)
