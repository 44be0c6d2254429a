# leadership_game/cascade.py
"""
Cascading deletes. Each step is its own write; a failure part way through
leaves the remaining children in place (there is no surrounding transaction).
"""
import logging

logger = logging.getLogger(__name__)


async def delete_task(db, task: dict):
    await db.submissions.delete_many({"task": task["_id"]})
    await db.tasks.delete_one({"_id": task["_id"]})
    logger.info(f"Deleted task '{task['title']}' and its submissions")


async def delete_team(db, team: dict):
    await db.submissions.delete_many({"team": team["_id"]})
    await db.reflections.delete_many({"team": team["_id"]})
    await db.teams.delete_one({"_id": team["_id"]})
    logger.info(f"Deleted team '{team['name']}' with its submissions and reflections")


async def delete_game(db, game: dict):
    """Tasks first, then per team its submissions and reflections, then teams, then the game."""
    tasks = await db.tasks.delete_many({"game": game["_id"]})

    teams = await db.teams.find({"game": game["_id"]}).to_list(length=None)
    for team in teams:
        await db.submissions.delete_many({"team": team["_id"]})
        await db.reflections.delete_many({"team": team["_id"]})

    await db.teams.delete_many({"game": game["_id"]})
    await db.games.delete_one({"_id": game["_id"]})

    logger.info(
        f"Deleted game '{game['title']}' with {tasks.deleted_count} tasks and {len(teams)} teams"
    )
