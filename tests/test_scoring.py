import asyncio

import pytest
from bson import ObjectId

from leadership_game import scoring
from leadership_game.errors import Conflict, InternalError
from leadership_game.models import CurrentUser, Role, SubmissionEvaluate


@pytest.mark.parametrize(
    "answer, expected",
    [("Empathy", (True, 10)), ("Charisma", (False, -5)), (None, (False, -5))],
)
def test_grade_multiple_choice(answer, expected):
    task = {"correctAnswer": "Empathy", "rewardPoints": 10, "riskPoints": 5}
    assert scoring.grade_multiple_choice(task, answer) == expected


async def test_apply_delta_accumulates(db):
    result = await db.teams.insert_one({"name": "Team Alpha", "members": [], "points": 0})

    await asyncio.gather(*(scoring.apply_delta(db, result.inserted_id, 3) for _ in range(5)))
    team = await scoring.apply_delta(db, result.inserted_id, -4)

    assert team["points"] == 11


async def test_apply_delta_to_missing_team_is_internal_error(db):
    with pytest.raises(InternalError):
        await scoring.apply_delta(db, ObjectId(), 5)


class InterleavedTasks:
    """Runs another writer's change just before the task lookup that follows the submission read."""

    def __init__(self, tasks, before_read):
        self._tasks = tasks
        self._before_read = before_read

    async def find_one(self, *args, **kwargs):
        await self._before_read()
        return await self._tasks.find_one(*args, **kwargs)


class InterleavedDb:
    def __init__(self, db, before_read):
        self._db = db
        self.tasks = InterleavedTasks(db.tasks, before_read)

    def __getattr__(self, name):
        return getattr(self._db, name)

    def __getitem__(self, name):
        return self._db[name]


async def test_concurrent_first_evaluations_award_points_once(
    client, db, text_task, team, participant, instructor, points
):
    response = await client.post(
        "/api/submissions",
        json={"task": text_task["_id"], "team": team["_id"], "answer": "We listened."},
        headers=participant["headers"],
    )
    submission_id = response.json()["_id"]

    async def other_evaluation():
        await db.submissions.update_one(
            {"_id": ObjectId(submission_id)}, {"$set": {"isEvaluated": True, "pointsEarned": 15}}
        )
        await scoring.apply_delta(db, ObjectId(team["_id"]), 15)

    caller = CurrentUser(id=instructor["id"], role=Role.INSTRUCTOR)
    evaluation = SubmissionEvaluate(isEvaluated=True, pointsEarned=15)
    with pytest.raises(Conflict):
        await scoring.evaluate_submission(InterleavedDb(db, other_evaluation), caller, submission_id, evaluation)

    assert await points(team, participant) == 15
