# leadership_game/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError
import logging
import os

from leadership_game.config import APP_ENV, CORS_ORIGINS, PORT, UPLOAD_DIR
from leadership_game.database import client, db, ensure_indexes
from leadership_game.routers import admin, auth, games, reflections, submissions, tasks, teams
from leadership_game.seed import create_admin_user, create_demo_data

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Leadership Game API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
app.include_router(auth.router)
app.include_router(games.router)
app.include_router(teams.router)
app.include_router(tasks.router)
app.include_router(submissions.router)
app.include_router(reflections.router)
app.include_router(admin.router)

# Uploaded videos
os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


# Application Lifecycle Events
@app.on_event("startup")
async def startup_event():
    """Actions to perform on application startup."""
    try:
        await client.admin.command('ping')
        logger.info("✅ Successfully connected to MongoDB!")
        await ensure_indexes(db)
        logger.info("✅ Database indexes have been ensured.")
        await create_admin_user(db)
        if APP_ENV == "development":
            await create_demo_data(db)
    except Exception as e:
        logger.error(f"❌ Failed to initialise MongoDB: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Actions to perform on application shutdown."""
    client.close()
    logger.info("✅ MongoDB connection has been closed.")


# Root Endpoint
@app.get("/")
async def root():
    """Root endpoint to check if the API is running."""
    return {"message": "Welcome to the Leadership Game API!", "status": "online"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("leadership_game.main:app", host="0.0.0.0", port=PORT)
