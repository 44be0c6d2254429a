# leadership_game/database.py
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from bson import ObjectId
import logging

from leadership_game.config import MONGODB_URL, MONGODB_DB

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(MONGODB_URL)
db = client[MONGODB_DB]


def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency returning the application database."""
    return db


async def ensure_indexes(database: AsyncIOMotorDatabase):
    """Create the uniqueness constraints the API relies on."""
    await database.users.create_index("username", unique=True)
    await database.users.create_index("email", unique=True)
    await database.games.create_index("accessCode", unique=True)
    await database.teams.create_index("game")
    await database.tasks.create_index("game")
    # A team submits each task at most once
    await database.submissions.create_index(
        [("task", ASCENDING), ("team", ASCENDING)], unique=True
    )
    await database.reflections.create_index(
        [("game", ASCENDING), ("team", ASCENDING), ("question", ASCENDING)], unique=True
    )


def to_object_id(value):
    """Parse an identifier coming from a client; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


async def populate(database: AsyncIOMotorDatabase, doc, field: str, collection: str, fields=None):
    """
    Replace the reference stored in doc[field] with the referenced document.
    Works for a single ObjectId or a list of them; unknown references are dropped.
    """
    if doc is None:
        return None

    projection = {name: 1 for name in fields} if fields else None
    ref = doc.get(field)

    if isinstance(ref, list):
        found = await database[collection].find({"_id": {"$in": ref}}, projection).to_list(length=None)
        by_id = {item["_id"]: item for item in found}
        doc[field] = [by_id[item] for item in ref if item in by_id]
    elif isinstance(ref, ObjectId):
        doc[field] = await database[collection].find_one({"_id": ref}, projection)

    return doc


async def populate_all(database: AsyncIOMotorDatabase, docs, field: str, collection: str, fields=None):
    for doc in docs:
        await populate(database, doc, field, collection, fields)
    return docs


def serialize_mongo_doc(doc):
    """Convert MongoDB document to JSON serializable format"""
    if doc is None:
        return None

    if isinstance(doc, ObjectId):
        return str(doc)

    if isinstance(doc, list):
        return [serialize_mongo_doc(item) for item in doc]

    if isinstance(doc, dict):
        serialized = {}
        for key, value in doc.items():
            if key == "hashed_password":
                continue
            serialized[key] = serialize_mongo_doc(value)
        return serialized

    return doc
