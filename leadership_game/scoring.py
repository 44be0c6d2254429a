# leadership_game/scoring.py
"""
Submission lifecycle: intake with auto-grading of multiple choice tasks,
manual evaluation by instructors, and the team score ledger both feed.
"""
from datetime import datetime
import logging

from fastapi import UploadFile
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from leadership_game import storage
from leadership_game.authz import Action, ensure_authorized, is_member
from leadership_game.database import to_object_id, populate
from leadership_game.errors import Conflict, Forbidden, InternalError, InvalidInput, NotFound
from leadership_game.models import CurrentUser, SubmissionEvaluate, TaskType

logger = logging.getLogger(__name__)


def grade_multiple_choice(task: dict, answer) -> tuple[bool, int]:
    """Return (is_correct, points_earned) for an answer to a multiple choice task."""
    is_correct = answer == task.get("correctAnswer")
    points = task.get("rewardPoints", 0) if is_correct else -task.get("riskPoints", 0)
    return is_correct, points


async def apply_delta(db, team_id, delta: int) -> dict:
    """
    Add a signed delta to a team's running point total.
    The increment is a single atomic update, so concurrent deltas never overwrite each other.
    """
    team = await db.teams.find_one_and_update(
        {"_id": team_id},
        {"$inc": {"points": delta}, "$set": {"updatedAt": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if team is None:
        logger.error(f"Cannot apply {delta:+d} points: team '{team_id}' no longer exists")
        raise InternalError("Team referenced by submission no longer exists")

    logger.info(f"Team '{team['name']}' {delta:+d} points. Total: {team['points']}")
    return team


async def load_submission(db, submission_id) -> dict | None:
    """Fetch a submission with its task, team and evaluator expanded."""
    submission = await db.submissions.find_one({"_id": submission_id})
    if submission is None:
        return None
    await populate(db, submission, "task", "tasks")
    await populate(db, submission, "team", "teams")
    await populate(db, submission, "evaluatedBy", "users", ["username"])
    return submission


async def create_submission(
    db,
    caller: CurrentUser,
    task_id: str,
    team_id: str,
    answer=None,
    upload: UploadFile | None = None,
) -> dict:
    """Record a team's single attempt at a task, auto-grading multiple choice answers."""
    task_oid = to_object_id(task_id)
    team_oid = to_object_id(team_id)
    task = await db.tasks.find_one({"_id": task_oid}) if task_oid else None
    team = await db.teams.find_one({"_id": team_oid}) if team_oid else None

    if not task or not team:
        raise NotFound("Task or team not found")
    if team["game"] != task["game"]:
        raise NotFound("Task or team not found")

    if not is_member(caller, team):
        raise Forbidden("Not a member of this team")

    if await db.submissions.find_one({"task": task["_id"], "team": team["_id"]}):
        raise Conflict("Task already submitted by this team")

    if task["type"] == TaskType.VIDEO.value and upload is None:
        raise InvalidInput("A video file is required for this task")

    file_url = await storage.store_video(upload) if upload is not None else None

    now = datetime.utcnow()
    submission = {
        "task": task["_id"],
        "team": team["_id"],
        "answer": answer,
        "fileUrl": file_url,
        "isEvaluated": False,
        "isCorrect": None,
        "pointsEarned": None,
        "feedback": None,
        "evaluatedBy": None,
        "evaluatedAt": None,
        "submittedAt": now,
        "createdAt": now,
        "updatedAt": now,
    }

    if task["type"] == TaskType.MULTIPLE_CHOICE.value:
        is_correct, points = grade_multiple_choice(task, answer)
        submission.update({
            "isEvaluated": True,
            "isCorrect": is_correct,
            "pointsEarned": points,
            "evaluatedAt": now,
        })

    try:
        result = await db.submissions.insert_one(submission)
    except DuplicateKeyError:
        storage.discard(file_url)
        raise Conflict("Task already submitted by this team")
    except Exception:
        storage.discard(file_url)
        raise

    if submission["isEvaluated"]:
        try:
            await apply_delta(db, team["_id"], submission["pointsEarned"])
        except InternalError:
            await db.submissions.delete_one({"_id": result.inserted_id})
            storage.discard(file_url)
            raise

    logger.info(f"Team '{team['name']}' submitted task '{task['title']}'")
    return await load_submission(db, result.inserted_id)


async def evaluate_submission(db, caller: CurrentUser, submission_id: str, evaluation: SubmissionEvaluate) -> dict:
    """
    Apply an instructor's evaluation and reconcile the team's points.

    Only the difference between the new and the previously awarded points is
    applied, so re-evaluating to the same value leaves the team total unchanged.
    A first evaluation without pointsEarned awards nothing. If the submission
    changed after it was read, nothing is written and Conflict is raised.
    """
    submission_oid = to_object_id(submission_id)
    submission = await db.submissions.find_one({"_id": submission_oid}) if submission_oid else None
    if not submission:
        raise NotFound("Submission not found")

    task = await db.tasks.find_one({"_id": submission["task"]})
    game = await db.games.find_one({"_id": task["game"]}) if task else None
    if game is None:
        logger.error(f"Submission '{submission_id}' references a missing task or game")
        raise InternalError("Submission references a missing task or game")

    ensure_authorized(caller, Action.GRADE, game, "Not authorized to evaluate this submission")

    was_evaluated = bool(submission.get("isEvaluated"))
    previous_points = (submission.get("pointsEarned") or 0) if was_evaluated else 0
    new_points = evaluation.pointsEarned if evaluation.pointsEarned is not None else previous_points
    delta = new_points - previous_points

    # Fields sent as null are treated like omitted ones
    updates = {
        key: value
        for key, value in evaluation.model_dump(exclude_unset=True).items()
        if value is not None
    }
    is_evaluated = updates.get("isEvaluated", was_evaluated)
    if is_evaluated:
        updates["pointsEarned"] = new_points

    now = datetime.utcnow()
    updates.update({
        "evaluatedBy": to_object_id(caller.id),
        "evaluatedAt": now,
        "updatedAt": now,
    })

    # Only write over the state the delta was computed from
    result = await db.submissions.update_one(
        {
            "_id": submission["_id"],
            "isEvaluated": submission.get("isEvaluated"),
            "pointsEarned": submission.get("pointsEarned"),
        },
        {"$set": updates},
    )
    if result.matched_count == 0:
        logger.warning(f"Submission '{submission_id}' changed while being evaluated")
        raise Conflict("Submission was evaluated concurrently, please retry")

    if is_evaluated and delta != 0:
        try:
            await apply_delta(db, submission["team"], delta)
        except InternalError:
            await db.submissions.replace_one({"_id": submission["_id"]}, submission)
            raise

    logger.info(f"Submission '{submission_id}' evaluated by '{caller.id}' (delta {delta:+d})")
    return await load_submission(db, submission["_id"])
