# leadership_game/routers/submissions.py
from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from pymongo import DESCENDING
from starlette.datastructures import UploadFile
import logging

from leadership_game import scoring
from leadership_game.authz import Action, ensure_authorized, get_current_user, require_roles
from leadership_game.database import get_db, populate, populate_all, serialize_mongo_doc, to_object_id
from leadership_game.errors import InternalError, InvalidInput
from leadership_game.models import CurrentUser, Role, SubmissionCreate, SubmissionEvaluate
from .helpers import find_or_404, hide_answer

router = APIRouter(prefix="/api/submissions", tags=["submissions"])
logger = logging.getLogger(__name__)


async def read_submission_payload(request: Request):
    """Accept either a JSON body or a multipart form carrying a video file."""
    content_type = request.headers.get("content-type", "")

    if "multipart/form-data" in content_type:
        form = await request.form()
        upload = form.get("file")
        if upload is not None and not isinstance(upload, UploadFile):
            raise InvalidInput("file must be an uploaded file")
        data = {key: form.get(key) for key in ("task", "team", "answer") if form.get(key) is not None}
    else:
        try:
            data = await request.json()
        except ValueError:
            raise InvalidInput("Malformed JSON body")
        upload = None

    try:
        return SubmissionCreate.model_validate(data), upload
    except ValidationError as e:
        raise RequestValidationError(e.errors())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_submission(
    request: Request,
    caller: CurrentUser = Depends(get_current_user),
    db=Depends(get_db),
):
    payload, upload = await read_submission_payload(request)
    submission = await scoring.create_submission(
        db, caller, payload.task, payload.team, payload.answer, upload
    )
    return serialize_mongo_doc(submission)


@router.get("")
async def list_submissions(caller: CurrentUser = Depends(require_roles(Role.ADMIN)), db=Depends(get_db)):
    submissions = await db.submissions.find().sort("submittedAt", DESCENDING).to_list(length=None)
    await populate_all(db, submissions, "task", "tasks")
    await populate_all(db, submissions, "team", "teams")
    await populate_all(db, submissions, "evaluatedBy", "users", ["username"])
    return serialize_mongo_doc(submissions)


@router.get("/pending")
async def list_pending_submissions(
    caller: CurrentUser = Depends(require_roles(Role.INSTRUCTOR, Role.ADMIN)),
    db=Depends(get_db),
):
    """Unevaluated submissions; instructors only see those for their own games."""
    query = {"isEvaluated": False}

    if not caller.is_admin:
        games = await db.games.find({"createdBy": to_object_id(caller.id)}).to_list(length=None)
        tasks = await db.tasks.find({"game": {"$in": [game["_id"] for game in games]}}).to_list(length=None)
        query["task"] = {"$in": [task["_id"] for task in tasks]}

    submissions = await db.submissions.find(query).sort("submittedAt", DESCENDING).to_list(length=None)
    await populate_all(db, submissions, "task", "tasks")
    for submission in submissions:
        if submission.get("task"):
            await populate(db, submission["task"], "game", "games", ["title"])
    await populate_all(db, submissions, "team", "teams")
    return serialize_mongo_doc(submissions)


@router.get("/{submission_id}")
async def get_submission(submission_id: str, caller: CurrentUser = Depends(get_current_user), db=Depends(get_db)):
    submission = await find_or_404(db.submissions, submission_id, "Submission not found")
    team = await db.teams.find_one({"_id": submission["team"]})
    task = await db.tasks.find_one({"_id": submission["task"]})
    game = await db.games.find_one({"_id": task["game"]}) if task else None
    if team is None or game is None:
        logger.error(f"Submission '{submission_id}' has dangling references")
        raise InternalError("Submission references a missing team or game")

    ensure_authorized(caller, Action.VIEW_TEAM, team, "Not authorized to view this submission", game=game)

    submission = await scoring.load_submission(db, submission["_id"])
    hide_answer(submission["task"], caller, game)
    return serialize_mongo_doc(submission)


@router.put("/{submission_id}")
async def evaluate_submission(
    submission_id: str,
    evaluation: SubmissionEvaluate,
    caller: CurrentUser = Depends(require_roles(Role.INSTRUCTOR, Role.ADMIN)),
    db=Depends(get_db),
):
    submission = await scoring.evaluate_submission(db, caller, submission_id, evaluation)
    return serialize_mongo_doc(submission)
