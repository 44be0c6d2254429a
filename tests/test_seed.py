from leadership_game import seed
from leadership_game.models import Role


async def test_demo_data_is_created_once(db):
    await seed.create_demo_data(db)
    await seed.create_demo_data(db)

    assert await db.games.count_documents({"title": "Test Game"}) == 1
    assert await db.teams.count_documents({}) == 2
    assert await db.tasks.count_documents({}) == len(seed.DEMO_TASKS)


async def test_demo_data_reuses_existing_users(db):
    await seed.create_demo_data(db)
    await db.games.delete_one({"title": "Test Game"})

    await seed.create_demo_data(db)

    assert await db.users.count_documents({"username": "instructor"}) == 1
    game = await db.games.find_one({"title": "Test Game"})
    instructor = await db.users.find_one({"username": "instructor"})
    assert game["accessCode"] == "TEST123"
    assert game["createdBy"] == instructor["_id"]


async def test_admin_user_is_created_when_missing(db):
    admin = await seed.create_admin_user(db)
    assert admin["role"] == "admin"

    assert await seed.create_admin_user(db) is None
    assert await db.users.count_documents({"role": "admin"}) == 1


async def test_admin_name_taken_by_non_admin(db, make_user):
    await make_user("admin", Role.PARTICIPANT)

    assert await seed.create_admin_user(db) is None
    assert await db.users.count_documents({"role": "admin"}) == 0
