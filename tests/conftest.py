import os
import tempfile
import uuid

os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="leadership-uploads-"))
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from leadership_game.database import ensure_indexes, get_db
from leadership_game.main import app
from leadership_game.models import Role
from leadership_game.routers.auth import insert_user
from leadership_game.security import create_access_token


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()[f"test_{uuid.uuid4().hex}"]
    await ensure_indexes(database)
    return database


@pytest.fixture
async def client(db):
    app.dependency_overrides[get_db] = lambda: db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make(username, role=Role.PARTICIPANT, password="secret123"):
        user = await insert_user(db, username, f"{username}@example.com", password, role)
        token = create_access_token(user["_id"], role.value)
        return {
            "id": str(user["_id"]),
            "username": username,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }
    return _make


@pytest.fixture
async def admin(make_user):
    return await make_user("admin", Role.ADMIN)


@pytest.fixture
async def instructor(make_user):
    return await make_user("instructor", Role.INSTRUCTOR)


@pytest.fixture
async def participant(make_user):
    return await make_user("participant")


@pytest.fixture
async def game(client, instructor):
    response = await client.post(
        "/api/games",
        json={"title": "Leadership Day", "description": "Field exercise", "accessCode": "LEAD01"},
        headers=instructor["headers"],
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
async def team(client, game, participant):
    response = await client.post(
        "/api/teams",
        json={"name": "Team Alpha", "game": game["_id"]},
        headers=participant["headers"],
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def make_task(client, game, instructor):
    async def _make(**fields):
        payload = {
            "title": "Task",
            "description": "Do something",
            "game": game["_id"],
            "type": "text",
        }
        payload.update(fields)
        response = await client.post("/api/tasks", json=payload, headers=instructor["headers"])
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
async def mc_task(make_task):
    return await make_task(
        title="Leadership Quiz",
        type="multiple_choice",
        options=["Charisma", "Intelligence", "Empathy", "Decisiveness"],
        correctAnswer="Empathy",
        rewardPoints=10,
        riskPoints=5,
    )


@pytest.fixture
async def text_task(make_task):
    return await make_task(title="Communication Challenge", type="text", rewardPoints=15, riskPoints=3)


async def team_points(client, team_id, headers):
    response = await client.get(f"/api/teams/{team_id}", headers=headers)
    assert response.status_code == 200
    return response.json()["points"]


@pytest.fixture
def points(client):
    async def _points(team, user):
        return await team_points(client, team["_id"], user["headers"])
    return _points
