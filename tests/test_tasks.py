import pytest
from bson import ObjectId

from leadership_game.models import Role


def task_payload(game, **fields):
    payload = {"title": "Quiz", "description": "Pick one", "game": game["_id"], "type": "text"}
    payload.update(fields)
    return payload


async def test_task_defaults(client, game, instructor):
    response = await client.post("/api/tasks", json=task_payload(game), headers=instructor["headers"])
    assert response.status_code == 201
    task = response.json()
    assert task["timeLimit"] == 15
    assert task["category"] == "Ledelse"
    assert task["riskPoints"] == 0
    assert task["rewardPoints"] == 0
    assert task["createdBy"] == instructor["id"]


async def test_multiple_choice_needs_correct_answer(client, game, instructor, db):
    response = await client.post(
        "/api/tasks",
        json=task_payload(game, type="multiple_choice", options=["A", "B"]),
        headers=instructor["headers"],
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Multiple choice tasks need a correct answer"
    assert await db.tasks.count_documents({}) == 0


@pytest.mark.parametrize("field", ["riskPoints", "rewardPoints"])
async def test_negative_points_are_rejected(client, game, instructor, field):
    response = await client.post("/api/tasks", json=task_payload(game, **{field: -1}), headers=instructor["headers"])
    assert response.status_code == 422


async def test_participant_cannot_create_task(client, game, participant):
    response = await client.post("/api/tasks", json=task_payload(game), headers=participant["headers"])
    assert response.status_code == 403


async def test_task_for_unknown_game(client, instructor):
    response = await client.post(
        "/api/tasks", json=task_payload({"_id": str(ObjectId())}), headers=instructor["headers"]
    )
    assert response.status_code == 404


async def test_only_creator_or_admin_updates_task(client, text_task, make_user, admin, instructor):
    other = await make_user("other_instructor", Role.INSTRUCTOR)
    response = await client.put(
        f"/api/tasks/{text_task['_id']}", json={"title": "Hijacked"}, headers=other["headers"]
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/tasks/{text_task['_id']}", json={"rewardPoints": 25}, headers=admin["headers"]
    )
    assert response.status_code == 200
    assert response.json()["rewardPoints"] == 25
    assert response.json()["title"] == "Communication Challenge"

    response = await client.put(
        f"/api/tasks/{text_task['_id']}", json={"type": "multiple_choice"}, headers=instructor["headers"]
    )
    assert response.status_code == 400


async def test_only_creator_or_admin_deletes_task(client, db, mc_task, make_user, admin):
    other = await make_user("other_instructor", Role.INSTRUCTOR)
    response = await client.delete(f"/api/tasks/{mc_task['_id']}", headers=other["headers"])
    assert response.status_code == 403

    response = await client.delete(f"/api/tasks/{mc_task['_id']}", headers=admin["headers"])
    assert response.status_code == 200
    assert await db.tasks.count_documents({"_id": ObjectId(mc_task["_id"])}) == 0


async def test_delete_task_removes_its_submissions(client, db, mc_task, text_task, team, participant, instructor):
    for task, answer in ((mc_task, "Empathy"), (text_task, "Essay")):
        await client.post(
            "/api/submissions",
            json={"task": task["_id"], "team": team["_id"], "answer": answer},
            headers=participant["headers"],
        )

    response = await client.delete(f"/api/tasks/{mc_task['_id']}", headers=instructor["headers"])
    assert response.status_code == 200
    assert await db.submissions.count_documents({"task": ObjectId(mc_task["_id"])}) == 0
    assert await db.submissions.count_documents({"task": ObjectId(text_task["_id"])}) == 1


async def test_get_task_hides_answer_key_from_participants(client, mc_task, participant, instructor):
    response = await client.get(f"/api/tasks/{mc_task['_id']}", headers=participant["headers"])
    assert response.status_code == 200
    assert "correctAnswer" not in response.json()
    assert response.json()["game"]["title"] == "Leadership Day"

    response = await client.get(f"/api/tasks/{mc_task['_id']}", headers=instructor["headers"])
    assert response.json()["correctAnswer"] == "Empathy"
