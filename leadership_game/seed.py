# leadership_game/seed.py
from datetime import datetime
import logging

from leadership_game.config import ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME
from leadership_game.security import PasswordHasher

logger = logging.getLogger(__name__)

DEMO_TASKS = [
    {
        "title": "Leadership Quiz",
        "description": "What is the most important quality of a leader?",
        "type": "multiple_choice",
        "options": ["Charisma", "Intelligence", "Empathy", "Decisiveness"],
        "correctAnswer": "Empathy",
        "riskPoints": 5, "rewardPoints": 10, "timeLimit": 5, "category": "Ledelse",
    },
    {
        "title": "Communication Challenge",
        "description": "Describe a situation where effective communication was crucial to success.",
        "type": "text",
        "riskPoints": 3, "rewardPoints": 15, "timeLimit": 10, "category": "Kommunikation",
    },
    {
        "title": "Decision Making",
        "description": "What is the first step in effective decision making?",
        "type": "multiple_choice",
        "options": ["Identify alternatives", "Define the problem", "Evaluate options", "Make a choice"],
        "correctAnswer": "Define the problem",
        "riskPoints": 5, "rewardPoints": 10, "timeLimit": 5, "category": "Beslutningstagning",
    },
    {
        "title": "Conflict Resolution",
        "description": "Explain how you would handle a conflict within your team.",
        "type": "text",
        "riskPoints": 3, "rewardPoints": 15, "timeLimit": 10, "category": "Konfliktløsning",
    },
    {
        "title": "Team Building Quiz",
        "description": "Which of these is NOT a stage in team development according to Tuckman's model?",
        "type": "multiple_choice",
        "options": ["Forming", "Storming", "Organizing", "Performing"],
        "correctAnswer": "Organizing",
        "riskPoints": 5, "rewardPoints": 10, "timeLimit": 5, "category": "Teambuilding",
    },
]


async def _get_or_create_user(db, username: str, email: str, password: str, role: str):
    existing = await db.users.find_one({"username": username})
    if existing:
        return existing

    now = datetime.utcnow()
    user = {
        "username": username,
        "email": email,
        "hashed_password": PasswordHasher.get_password_hash(password),
        "role": role,
        "createdAt": now,
        "updatedAt": now,
    }
    await db.users.insert_one(user)
    return user


async def create_admin_user(db):
    """Create the bootstrap admin when no admin account exists yet."""
    if await db.users.find_one({"role": "admin"}):
        return None

    admin = await _get_or_create_user(db, ADMIN_USERNAME, ADMIN_EMAIL, ADMIN_PASSWORD, "admin")
    if admin["role"] != "admin":
        logger.warning(f"User '{ADMIN_USERNAME}' exists without the admin role, no admin created")
        return None
    logger.info(f"✅ Admin user '{ADMIN_USERNAME}' created")
    return admin


async def create_demo_data(db):
    """Seed an instructor, two participants and a playable test game, once."""
    if await db.games.find_one({"title": "Test Game"}):
        return

    logger.info("Creating demo data...")
    now = datetime.utcnow()

    instructor = await _get_or_create_user(db, "instructor", "instructor@example.com", "instructor123", "instructor")
    participant1 = await _get_or_create_user(db, "participant1", "participant1@example.com", "participant123", "participant")
    participant2 = await _get_or_create_user(db, "participant2", "participant2@example.com", "participant123", "participant")

    game = {
        "title": "Test Game",
        "description": "This is a test game for development",
        "accessCode": "TEST123",
        "isActive": True,
        "createdBy": instructor["_id"],
        "startTime": now,
        "endTime": None,
        "createdAt": now,
        "updatedAt": now,
    }
    await db.games.insert_one(game)

    await db.teams.insert_many([
        {"name": "Team Alpha", "game": game["_id"], "members": [participant1["_id"]], "points": 0,
         "createdAt": now, "updatedAt": now},
        {"name": "Team Beta", "game": game["_id"], "members": [participant2["_id"]], "points": 0,
         "createdAt": now, "updatedAt": now},
    ])

    await db.tasks.insert_many([
        {"options": [], "correctAnswer": None, **task,
         "game": game["_id"], "createdBy": instructor["_id"], "createdAt": now, "updatedAt": now}
        for task in DEMO_TASKS
    ])

    logger.info("✅ Demo data created successfully")
