"""
Due-date reminders

Classifies incomplete todos with a due date into overdue / due-soon
reminders. Works on server todos and client cache entries alike: anything
with text, completed, due_date and id attributes.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, List, Optional

from app.features.todos.domain import Reminder, ReminderKind
from app.utils.datetime_helper import ensure_utc

DUE_SOON_WINDOW = timedelta(hours=24)


def due_moment(due_date: date) -> datetime:
    """A due date is reached at the start of that day, UTC"""
    return datetime.combine(due_date, time.min, tzinfo=timezone.utc)


def is_overdue(todo: Any, now: datetime) -> bool:
    if todo.completed or todo.due_date is None:
        return False
    return due_moment(todo.due_date) < ensure_utc(now)


def classify(todo: Any, now: datetime) -> Optional[Reminder]:
    """Build the reminder for a single todo, or None if nothing is due"""
    if todo.completed or todo.due_date is None:
        return None

    now = ensure_utc(now)
    due_at = due_moment(todo.due_date)

    if due_at < now:
        return Reminder(
            todo_id=todo.id,
            text=todo.text,
            due_date=todo.due_date,
            kind=ReminderKind.OVERDUE,
            title="Task Overdue!",
            body=f'"{todo.text}" is overdue!',
        )

    if due_at <= now + DUE_SOON_WINDOW:
        return Reminder(
            todo_id=todo.id,
            text=todo.text,
            due_date=todo.due_date,
            kind=ReminderKind.DUE_SOON,
            title="Task Due Soon!",
            body=f'"{todo.text}" is due on {todo.due_date.isoformat()}',
        )

    return None


def collect_reminders(todos: Iterable[Any], now: datetime) -> List[Reminder]:
    """Reminders for every todo that needs one, in list order"""
    reminders = []
    for todo in todos:
        reminder = classify(todo, now)
        if reminder is not None:
            reminders.append(reminder)
    return reminders
