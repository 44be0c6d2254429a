# leadership_game/routers/helpers.py

import random
import string

from leadership_game.authz import is_owner
from leadership_game.database import populate, to_object_id
from leadership_game.errors import NotFound
from leadership_game.models import CurrentUser


async def find_or_404(collection, entity_id, message: str) -> dict:
    """Load a document by its string id, raising NotFound for unknown or malformed ids."""
    oid = to_object_id(entity_id)
    doc = await collection.find_one({"_id": oid}) if oid else None
    if not doc:
        raise NotFound(message)
    return doc


async def generate_unique_access_code(db) -> str:
    """Generate a unique 6-character access code (3 letters followed by 3 digits)."""
    while True:
        letters = ''.join(random.choices(string.ascii_uppercase, k=3))
        numbers = ''.join(random.choices(string.digits, k=3))
        code = f"{letters}{numbers}"

        if not await db.games.find_one({"accessCode": code}):
            return code


async def with_game_stats(db, game: dict) -> dict:
    """Attach team, task and participant counts and expand the creator."""
    teams = await db.teams.find({"game": game["_id"]}).to_list(length=None)
    game["teamCount"] = len(teams)
    game["taskCount"] = await db.tasks.count_documents({"game": game["_id"]})
    game["participantCount"] = sum(len(team.get("members", [])) for team in teams)
    await populate(db, game, "createdBy", "users", ["username"])
    return game


def hide_answer(task: dict, caller: CurrentUser, game: dict | None) -> dict:
    """Strip the correct answer unless the caller manages the task's game."""
    if caller.is_admin or is_owner(caller, task) or (game is not None and is_owner(caller, game)):
        return task
    task.pop("correctAnswer", None)
    return task
