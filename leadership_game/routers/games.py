# leadership_game/routers/games.py
from fastapi import APIRouter, Depends, status
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError
from datetime import datetime
import logging

from leadership_game import cascade
from leadership_game.authz import Action, ensure_authorized, get_current_user, require_roles
from leadership_game.database import get_db, populate, populate_all, serialize_mongo_doc, to_object_id
from leadership_game.errors import Conflict, NotFound
from leadership_game.models import CurrentUser, GameCreate, GameJoin, GameUpdate, Role
from .helpers import find_or_404, generate_unique_access_code, hide_answer, with_game_stats

router = APIRouter(prefix="/api/games", tags=["games"])
logger = logging.getLogger(__name__)

manager_only = require_roles(Role.INSTRUCTOR, Role.ADMIN)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_game(
    game: GameCreate,
    caller: CurrentUser = Depends(manager_only),
    db=Depends(get_db),
):
    access_code = game.accessCode or await generate_unique_access_code(db)
    if await db.games.find_one({"accessCode": access_code}):
        raise Conflict("Game with this access code already exists")

    now = datetime.utcnow()
    game_dict = {
        "title": game.title,
        "description": game.description,
        "accessCode": access_code,
        "isActive": game.isActive,
        "createdBy": to_object_id(caller.id),
        "startTime": game.startTime or now,
        "endTime": game.endTime,
        "createdAt": now,
        "updatedAt": now,
    }

    try:
        await db.games.insert_one(game_dict)
    except DuplicateKeyError:
        raise Conflict("Game with this access code already exists")

    logger.info(f"Game '{game.title}' created with access code {access_code}")
    return serialize_mongo_doc(game_dict)


@router.get("")
async def list_games(caller: CurrentUser = Depends(require_roles(Role.ADMIN)), db=Depends(get_db)):
    """All games with team, task and participant counts, newest first."""
    games = await db.games.find().sort("createdAt", DESCENDING).to_list(length=None)
    for game in games:
        await with_game_stats(db, game)
    return serialize_mongo_doc(games)


@router.get("/instructor")
async def list_instructor_games(caller: CurrentUser = Depends(manager_only), db=Depends(get_db)):
    """Games created by the caller; admins see every game."""
    query = {} if caller.is_admin else {"createdBy": to_object_id(caller.id)}
    games = await db.games.find(query).sort("createdAt", DESCENDING).to_list(length=None)
    for game in games:
        await with_game_stats(db, game)
    return serialize_mongo_doc(games)


@router.post("/join")
async def join_game(
    join: GameJoin,
    caller: CurrentUser = Depends(get_current_user),
    db=Depends(get_db),
):
    """Look up an active game by access code, along with the caller's team in it if any."""
    game = await db.games.find_one({"accessCode": join.accessCode, "isActive": True})
    if not game:
        raise NotFound("Game not found or inactive")

    team = await db.teams.find_one({"game": game["_id"], "members": to_object_id(caller.id)})
    return {"game": serialize_mongo_doc(game), "team": serialize_mongo_doc(team)}


@router.get("/{game_id}")
async def get_game(game_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    game = await find_or_404(db.games, game_id, "Game not found")
    await populate(db, game, "createdBy", "users", ["username"])
    return serialize_mongo_doc(game)


@router.put("/{game_id}")
async def update_game(
    game_id: str,
    changes: GameUpdate,
    caller: CurrentUser = Depends(manager_only),
    db=Depends(get_db),
):
    game = await find_or_404(db.games, game_id, "Game not found")
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to update this game")

    provided = changes.model_dump(exclude_unset=True)
    # endTime may be cleared explicitly, the other fields only replaced
    updates = {key: value for key, value in provided.items() if value is not None or key == "endTime"}

    access_code = updates.get("accessCode")
    if access_code and access_code != game["accessCode"]:
        if await db.games.find_one({"accessCode": access_code, "_id": {"$ne": game["_id"]}}):
            raise Conflict("Game with this access code already exists")

    if updates:
        updates["updatedAt"] = datetime.utcnow()
        await db.games.update_one({"_id": game["_id"]}, {"$set": updates})
        game.update(updates)

    return serialize_mongo_doc(game)


@router.delete("/{game_id}")
async def delete_game(game_id: str, caller: CurrentUser = Depends(manager_only), db=Depends(get_db)):
    game = await find_or_404(db.games, game_id, "Game not found")
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to delete this game")

    await cascade.delete_game(db, game)
    return {"message": "Game deleted successfully"}


@router.get("/{game_id}/scoreboard")
async def get_scoreboard(game_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    """Teams ranked by points with the number of evaluated submissions each."""
    game = await find_or_404(db.games, game_id, "Game not found")
    teams = await db.teams.find({"game": game["_id"]}).sort("points", DESCENDING).to_list(length=None)
    await populate_all(db, teams, "members", "users", ["username"])

    for team in teams:
        team["completedTasks"] = await db.submissions.count_documents(
            {"team": team["_id"], "isEvaluated": True}
        )

    return serialize_mongo_doc(teams)


@router.get("/{game_id}/teams")
async def get_game_teams(game_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    game = await find_or_404(db.games, game_id, "Game not found")
    teams = await db.teams.find({"game": game["_id"]}).sort("points", DESCENDING).to_list(length=None)
    await populate_all(db, teams, "members", "users", ["username"])
    return serialize_mongo_doc(teams)


@router.get("/{game_id}/tasks")
async def get_game_tasks(game_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    game = await find_or_404(db.games, game_id, "Game not found")
    tasks = await db.tasks.find({"game": game["_id"]}).sort("category", ASCENDING).to_list(length=None)
    return serialize_mongo_doc([hide_answer(task, caller, game) for task in tasks])


@router.get("/{game_id}/submissions")
async def get_game_submissions(game_id: str, caller: CurrentUser = Depends(manager_only), db=Depends(get_db)):
    game = await find_or_404(db.games, game_id, "Game not found")
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to view game submissions")

    task_ids = [task["_id"] for task in await db.tasks.find({"game": game["_id"]}).to_list(length=None)]
    submissions = await db.submissions.find({"task": {"$in": task_ids}}).sort(
        "submittedAt", DESCENDING
    ).to_list(length=None)
    await populate_all(db, submissions, "task", "tasks")
    await populate_all(db, submissions, "team", "teams")
    return serialize_mongo_doc(submissions)


@router.get("/{game_id}/reflections")
async def get_game_reflections(game_id: str, caller: CurrentUser = Depends(manager_only), db=Depends(get_db)):
    game = await find_or_404(db.games, game_id, "Game not found")
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to view game reflections")

    reflections = await db.reflections.find({"game": game["_id"]}).sort("team", ASCENDING).to_list(length=None)
    await populate_all(db, reflections, "team", "teams", ["name"])
    return serialize_mongo_doc(reflections)
