from leadership_game.models import Role


async def test_creator_is_first_member(client, team, participant):
    assert [member["username"] for member in team["members"]] == ["participant"]
    assert team["points"] == 0
    assert team["game"]["title"] == "Leadership Day"


async def test_join_team(client, team, make_user):
    teammate = await make_user("teammate")
    response = await client.post(f"/api/teams/{team['_id']}/join", headers=teammate["headers"])
    assert response.status_code == 200
    assert {member["username"] for member in response.json()["members"]} == {"participant", "teammate"}


async def test_join_same_team_twice_is_conflict(client, team, participant):
    response = await client.post(f"/api/teams/{team['_id']}/join", headers=participant["headers"])
    assert response.status_code == 409
    assert response.json()["detail"] == "Already a member of this team"


async def test_one_team_per_game(client, game, team, participant, make_user):
    other = await make_user("other")
    response = await client.post(
        "/api/teams", json={"name": "Team Beta", "game": game["_id"]}, headers=other["headers"]
    )
    beta = response.json()

    response = await client.post(f"/api/teams/{beta['_id']}/join", headers=participant["headers"])
    assert response.status_code == 409
    assert response.json()["detail"] == "Already a member of another team in this game"

    response = await client.post(
        "/api/teams", json={"name": "Team Gamma", "game": game["_id"]}, headers=participant["headers"]
    )
    assert response.status_code == 409


async def test_direct_add_respects_one_team_per_game(client, game, team, instructor, participant, make_user):
    other = await make_user("other")
    response = await client.post(
        "/api/teams", json={"name": "Team Beta", "game": game["_id"]}, headers=other["headers"]
    )
    beta = response.json()

    response = await client.post(
        f"/api/teams/{beta['_id']}/members", json={"user": participant["id"]}, headers=instructor["headers"]
    )
    assert response.status_code == 409

    newcomer = await make_user("newcomer")
    response = await client.post(
        f"/api/teams/{beta['_id']}/members", json={"user": newcomer["id"]}, headers=instructor["headers"]
    )
    assert response.status_code == 200
    assert len(response.json()["members"]) == 2


async def test_direct_add_requires_game_owner(client, team, make_user, participant):
    stranger = await make_user("stranger", Role.INSTRUCTOR)
    newcomer = await make_user("newcomer")
    response = await client.post(
        f"/api/teams/{team['_id']}/members", json={"user": newcomer["id"]}, headers=stranger["headers"]
    )
    assert response.status_code == 403

    response = await client.post(
        f"/api/teams/{team['_id']}/members", json={"user": newcomer["id"]}, headers=participant["headers"]
    )
    assert response.status_code == 403


async def test_user_teams(client, team, participant):
    response = await client.get("/api/teams/user", headers=participant["headers"])
    assert response.status_code == 200
    [mine] = response.json()
    assert mine["game"]["accessCode"] == "LEAD01"


async def test_team_submissions_visibility(client, team, make_user, instructor, admin):
    outsider = await make_user("outsider")
    response = await client.get(f"/api/teams/{team['_id']}/submissions", headers=outsider["headers"])
    assert response.status_code == 403

    for viewer in (instructor, admin):
        response = await client.get(f"/api/teams/{team['_id']}/submissions", headers=viewer["headers"])
        assert response.status_code == 200


async def test_rename_and_delete_team(client, db, team, participant, instructor):
    response = await client.put(
        f"/api/teams/{team['_id']}", json={"name": "Team Omega"}, headers=participant["headers"]
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Team Omega"

    response = await client.delete(f"/api/teams/{team['_id']}", headers=participant["headers"])
    assert response.status_code == 403

    response = await client.delete(f"/api/teams/{team['_id']}", headers=instructor["headers"])
    assert response.status_code == 200
    assert await db.teams.count_documents({}) == 0
