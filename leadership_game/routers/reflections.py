# leadership_game/routers/reflections.py
from fastapi import APIRouter, Depends, Response, status
from pymongo import DESCENDING
from datetime import datetime
import logging

from leadership_game.authz import Action, ensure_authorized, get_current_user, require_roles
from leadership_game.database import get_db, populate, populate_all, serialize_mongo_doc
from leadership_game.errors import InternalError, NotFound
from leadership_game.models import CurrentUser, ReflectionCreate, ReflectionUpdate, Role
from .helpers import find_or_404

router = APIRouter(prefix="/api/reflections", tags=["reflections"])
logger = logging.getLogger(__name__)

# Post-game questions every team answers
REFLECTION_QUESTIONS = [
    "Hvad var jeres største udfordring i spillet?",
    "Hvilke ledelseskompetencer har I trænet?",
    "Hvordan fungerede jeres teamsamarbejde?",
    "Hvad er jeres vigtigste læring fra opgaverne?",
    "Hvad ville I gøre anderledes næste gang?",
]


async def upsert_reflection(db, game: dict, team: dict, question: str, answer: str) -> tuple[dict, bool]:
    """Store a team's answer to a question, overwriting an earlier answer. Returns (reflection, created)."""
    now = datetime.utcnow()
    key = {"game": game["_id"], "team": team["_id"], "question": question}
    result = await db.reflections.update_one(
        key,
        {"$set": {"answer": answer, "updatedAt": now}, "$setOnInsert": {"createdAt": now}},
        upsert=True,
    )
    reflection = await db.reflections.find_one(key)
    return reflection, result.upserted_id is not None


async def reflection_context(db, reflection: dict) -> tuple[dict, dict]:
    team = await db.teams.find_one({"_id": reflection["team"]})
    game = await db.games.find_one({"_id": reflection["game"]})
    if team is None or game is None:
        logger.error(f"Reflection '{reflection['_id']}' has dangling references")
        raise InternalError("Reflection references a missing team or game")
    return team, game


@router.get("/questions")
async def list_questions(caller: CurrentUser = Depends(get_current_user)):
    return {"questions": REFLECTION_QUESTIONS}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_reflection(
    reflection: ReflectionCreate,
    response: Response,
    caller: CurrentUser = Depends(get_current_user),
    db=Depends(get_db),
):
    game = await find_or_404(db.games, reflection.game, "Game or team not found")
    team = await find_or_404(db.teams, reflection.team, "Game or team not found")
    if team["game"] != game["_id"]:
        raise NotFound("Game or team not found")

    ensure_authorized(caller, Action.MEMBER, team, "Not a member of this team")

    saved, created = await upsert_reflection(db, game, team, reflection.question, reflection.answer)
    if not created:
        response.status_code = status.HTTP_200_OK

    return serialize_mongo_doc(saved)


@router.get("")
async def list_reflections(caller: CurrentUser = Depends(require_roles(Role.ADMIN)), db=Depends(get_db)):
    reflections = await db.reflections.find().sort("createdAt", DESCENDING).to_list(length=None)
    await populate_all(db, reflections, "game", "games", ["title"])
    await populate_all(db, reflections, "team", "teams", ["name"])
    return serialize_mongo_doc(reflections)


@router.get("/{reflection_id}")
async def get_reflection(reflection_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    reflection = await find_or_404(db.reflections, reflection_id, "Reflection not found")
    team, game = await reflection_context(db, reflection)
    ensure_authorized(caller, Action.VIEW_TEAM, team, "Not authorized to view this reflection", game=game)

    await populate(db, reflection, "game", "games", ["title"])
    await populate(db, reflection, "team", "teams", ["name"])
    return serialize_mongo_doc(reflection)


@router.put("/{reflection_id}")
async def update_reflection(
    reflection_id: str,
    changes: ReflectionUpdate,
    caller: CurrentUser = Depends(get_current_user),
    db=Depends(get_db),
):
    reflection = await find_or_404(db.reflections, reflection_id, "Reflection not found")
    team, _ = await reflection_context(db, reflection)
    ensure_authorized(caller, Action.MEMBER, team, "Not authorized to update this reflection")

    updates = {"answer": changes.answer, "updatedAt": datetime.utcnow()}
    await db.reflections.update_one({"_id": reflection["_id"]}, {"$set": updates})
    reflection.update(updates)
    return serialize_mongo_doc(reflection)
