"""Build streak rules.

A streak is the number of consecutive calendar days with at least one logged
activity. Everything here is a pure function of its arguments; "today" is
always passed in by the caller.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class StreakUpdate:
    """Result of logging today's work against the stored counters"""
    current_streak: int
    longest_streak: int
    changed: bool


class Milestone(BaseModel):
    """A streak badge"""
    days: int
    title: str
    icon: str


STREAK_MILESTONES: List[Milestone] = [
    Milestone(days=7, title="Week Warrior", icon="🔥"),
    Milestone(days=30, title="Monthly Master", icon="🚀"),
    Milestone(days=100, title="Century Champ", icon="💯"),
    Milestone(days=365, title="Yearly Legend", icon="🏆"),
]


def compute_streak(
    last_activity_date: Optional[date],
    current_streak: int,
    longest_streak: int,
    today: date,
) -> StreakUpdate:
    """Decide whether logging work today extends, holds or resets the streak.

    Args:
        last_activity_date: Day of the previous logged activity, or None
        current_streak: Stored current streak
        longest_streak: Stored longest streak
        today: The caller's current date

    Returns:
        The new counters. `changed` is False when today was already logged.
    """
    if last_activity_date is None:
        return StreakUpdate(1, max(1, longest_streak), True)

    if last_activity_date == today:
        return StreakUpdate(current_streak, longest_streak, False)

    if last_activity_date == today - timedelta(days=1):
        streak = current_streak + 1
        return StreakUpdate(streak, max(streak, longest_streak), True)

    # A gap of two or more days, or a last activity dated in the future.
    return StreakUpdate(1, max(1, longest_streak), True)


def displayed_streak(
    last_activity_date: Optional[date],
    current_streak: int,
    today: date,
) -> int:
    """Streak to show on the dashboard.

    A stored streak whose last activity is neither today nor yesterday is
    already broken, so it reads as 0 until the next log resets it to 1.
    """
    if last_activity_date is None:
        return 0
    if last_activity_date in (today, today - timedelta(days=1)):
        return current_streak
    return 0


def achieved_milestones(streak: int) -> List[Milestone]:
    return [m for m in STREAK_MILESTONES if m.days <= streak]


def next_milestone(streak: int) -> Optional[Milestone]:
    for milestone in STREAK_MILESTONES:
        if milestone.days > streak:
            return milestone
    return None


class StreakStats(BaseModel):
    """Community streak overview"""
    total_users: int
    active_streaks: int
    streak_rate: float
    top_streak: int


def streak_stats(streaks: Iterable[dict], today: date) -> StreakStats:
    """Summarize `user_streaks` rows across all users."""
    total = 0
    active = 0
    top = 0
    for row in streaks:
        total += 1
        shown = displayed_streak(
            row.get("last_activity_date"),
            row.get("current_streak") or 0,
            today,
        )
        if shown > 0:
            active += 1
        top = max(top, shown)

    rate = round(active / total * 100, 1) if total else 0.0
    return StreakStats(
        total_users=total,
        active_streaks=active,
        streak_rate=rate,
        top_streak=top,
    )
