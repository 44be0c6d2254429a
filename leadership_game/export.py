# leadership_game/export.py
import csv
import io
import re


def _yes_no(value) -> str:
    return "Yes" if value else "No"


def _timestamp(value) -> str:
    return value.isoformat() if value is not None and hasattr(value, "isoformat") else (value or "N/A")


def export_filename(game: dict) -> str:
    title = re.sub(r"\s+", "_", game["title"])
    return f"{title}_data.csv"


def build_game_csv(game: dict, creator: str, teams: list, tasks: list, submissions: list, reflections: list) -> str:
    """
    Render one game's data as CSV with five sections:
    game information, teams, tasks, submissions and reflections.
    Teams are expected with their members expanded to user documents.
    """
    out = io.StringIO()
    writer = csv.writer(out)

    team_names = {team["_id"]: team["name"] for team in teams}
    task_titles = {task["_id"]: task["title"] for task in tasks}

    writer.writerow(["Game Information"])
    writer.writerow(["Title", game["title"]])
    writer.writerow(["Access Code", game["accessCode"]])
    writer.writerow(["Created By", creator])
    writer.writerow(["Start Time", _timestamp(game.get("startTime"))])
    writer.writerow(["End Time", _timestamp(game.get("endTime"))])
    writer.writerow(["Active", _yes_no(game.get("isActive"))])
    writer.writerow([])

    writer.writerow(["Teams"])
    writer.writerow(["Name", "Members", "Points"])
    for team in teams:
        members = ", ".join(member["username"] for member in team.get("members", []))
        writer.writerow([team["name"], members, team.get("points", 0)])
    writer.writerow([])

    writer.writerow(["Tasks"])
    writer.writerow(["Title", "Type", "Category", "Risk Points", "Reward Points", "Time Limit"])
    for task in tasks:
        writer.writerow([
            task["title"], task["type"], task.get("category"),
            task.get("riskPoints", 0), task.get("rewardPoints", 0), task.get("timeLimit"),
        ])
    writer.writerow([])

    writer.writerow(["Submissions"])
    writer.writerow(["Team", "Task", "Evaluated", "Correct", "Points Earned", "Submitted At"])
    for submission in submissions:
        team_name = team_names.get(submission["team"])
        task_title = task_titles.get(submission["task"])
        if team_name is None or task_title is None:
            continue
        writer.writerow([
            team_name, task_title,
            _yes_no(submission.get("isEvaluated")), _yes_no(submission.get("isCorrect")),
            submission.get("pointsEarned") or 0, _timestamp(submission.get("submittedAt")),
        ])
    writer.writerow([])

    writer.writerow(["Reflections"])
    writer.writerow(["Team", "Question", "Answer"])
    for reflection in reflections:
        team_name = team_names.get(reflection["team"])
        if team_name is None:
            continue
        writer.writerow([team_name, reflection["question"], reflection["answer"]])

    return out.getvalue()
