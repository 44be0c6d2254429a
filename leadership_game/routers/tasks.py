# leadership_game/routers/tasks.py
from fastapi import APIRouter, Depends, status
from pymongo import DESCENDING
from datetime import datetime
import logging

from leadership_game import cascade
from leadership_game.authz import Action, ensure_authorized, get_current_user, require_roles
from leadership_game.database import get_db, populate, populate_all, serialize_mongo_doc, to_object_id
from leadership_game.errors import InvalidInput
from leadership_game.models import CurrentUser, Role, TaskCreate, TaskType, TaskUpdate
from .helpers import find_or_404, hide_answer

router = APIRouter(prefix="/api/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)

manager_only = require_roles(Role.INSTRUCTOR, Role.ADMIN)


def check_answer_key(task_type: str, correct_answer):
    if task_type == TaskType.MULTIPLE_CHOICE.value and not correct_answer:
        raise InvalidInput("Multiple choice tasks need a correct answer")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(task: TaskCreate, caller: CurrentUser = Depends(manager_only), db=Depends(get_db)):
    game = await find_or_404(db.games, task.game, "Game not found")
    ensure_authorized(caller, Action.MANAGE, game, "Not authorized to add tasks to this game")
    check_answer_key(task.type.value, task.correctAnswer)

    now = datetime.utcnow()
    task_dict = {
        "title": task.title,
        "description": task.description,
        "game": game["_id"],
        "type": task.type.value,
        "options": task.options,
        "correctAnswer": task.correctAnswer,
        "riskPoints": task.riskPoints,
        "rewardPoints": task.rewardPoints,
        "timeLimit": task.timeLimit,
        "category": task.category or "Ledelse",
        "createdBy": to_object_id(caller.id),
        "createdAt": now,
        "updatedAt": now,
    }
    await db.tasks.insert_one(task_dict)

    logger.info(f"Task '{task.title}' ({task.type.value}) added to game '{game['title']}'")
    return serialize_mongo_doc(task_dict)


@router.get("")
async def list_tasks(caller: CurrentUser = Depends(require_roles(Role.ADMIN)), db=Depends(get_db)):
    tasks = await db.tasks.find().sort("createdAt", DESCENDING).to_list(length=None)
    await populate_all(db, tasks, "game", "games", ["title"])
    await populate_all(db, tasks, "createdBy", "users", ["username"])
    return serialize_mongo_doc(tasks)


@router.get("/{task_id}")
async def get_task(task_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    task = await find_or_404(db.tasks, task_id, "Task not found")
    game = await db.games.find_one({"_id": task["game"]})
    hide_answer(task, caller, game)

    await populate(db, task, "game", "games", ["title"])
    await populate(db, task, "createdBy", "users", ["username"])
    return serialize_mongo_doc(task)


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    changes: TaskUpdate,
    caller: CurrentUser = Depends(manager_only),
    db=Depends(get_db),
):
    task = await find_or_404(db.tasks, task_id, "Task not found")
    ensure_authorized(caller, Action.MANAGE, task, "Not authorized to update this task")

    updates = {
        key: value
        for key, value in changes.model_dump(exclude_unset=True, mode="json").items()
        if value is not None
    }
    check_answer_key(updates.get("type", task["type"]), updates.get("correctAnswer", task.get("correctAnswer")))

    if updates:
        updates["updatedAt"] = datetime.utcnow()
        await db.tasks.update_one({"_id": task["_id"]}, {"$set": updates})
        task.update(updates)

    return serialize_mongo_doc(task)


@router.delete("/{task_id}")
async def delete_task(task_id: str, caller: CurrentUser = Depends(manager_only), db=Depends(get_db)):
    task = await find_or_404(db.tasks, task_id, "Task not found")
    ensure_authorized(caller, Action.MANAGE, task, "Not authorized to delete this task")

    await cascade.delete_task(db, task)
    return {"message": "Task deleted successfully"}
