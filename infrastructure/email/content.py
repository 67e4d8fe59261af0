"""Shared wording for outbound emails, used by every EmailProvider."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from schemas.models.task import Task

TASK_TYPE_ICONS = {
    "watering": "💧",
    "planting": "🌱",
    "harvest": "🌾",
    "fertilizing": "🌿",
    "pruning": "✂️",
    "other": "📋",
}
DEFAULT_ICON = "🔔"


def task_icon(task_type: Optional[str]) -> str:
    return TASK_TYPE_ICONS.get(task_type or "", DEFAULT_ICON)


def reminder_subject(task: Task) -> str:
    return f"🌱 Garden Reminder: {task.title}"


def reminder_text(task: Task) -> str:
    lines = [
        f"Garden Reminder: {task.title}",
        "",
        f"Type: {task.type}",
        f"Due: {task.due_date.isoformat()}",
    ]
    if task.garden_name:
        lines.append(f"Garden: {task.garden_name}")
    if task.plant_name:
        lines.append(f"Plant: {task.plant_name}")
    lines += ["", "Don't forget to mark this task as complete in your Garden Planner!"]
    return "\n".join(lines)


def verification_text(user_name: Optional[str], otp_code: str, ttl_minutes: int) -> str:
    return (
        f"Verify Your Email - Garden Planner\n\n"
        f"Hello{f' {user_name}' if user_name else ''},\n\n"
        f"Your verification code is: {otp_code}\n\n"
        f"This code expires in {ttl_minutes} minutes."
    )


@dataclass
class GardenSummary:
    """Open tasks due in the coming week, grouped for the summary email."""

    week_of: date
    upcoming_tasks: list[Task] = field(default_factory=list)
    gardens: list[str] = field(default_factory=list)


def build_garden_summary(
    tasks: Iterable[Task], today: date, horizon_days: int = 7
) -> GardenSummary:
    end = today + timedelta(days=horizon_days)
    upcoming = sorted(
        (t for t in tasks if not t.completed and today <= t.due_date <= end),
        key=lambda t: (t.due_date, t.title),
    )
    gardens = sorted({t.garden_name for t in upcoming if t.garden_name})
    return GardenSummary(week_of=today, upcoming_tasks=upcoming, gardens=gardens)


def summary_subject(summary: GardenSummary) -> str:
    return f"🌱 Your Garden Summary - {summary.week_of.isoformat()}"


def summary_text(summary: GardenSummary) -> str:
    lines = [
        f"Your Garden Summary for the week of {summary.week_of.isoformat()}",
        "",
        f"Upcoming tasks: {len(summary.upcoming_tasks)}",
        f"Gardens: {len(summary.gardens)}",
        "",
    ]
    for task in summary.upcoming_tasks:
        lines.append(f"- {task.due_date.isoformat()}  {task.title} ({task.type})")
    return "\n".join(lines)


TEST_SUBJECT = "🌱 Garden Planner Test Notification"
TEST_TEXT = (
    "This is a test notification from Garden Planner! "
    "Your email notifications are working correctly."
)
