from datetime import date, timedelta

import pytest

from sidebuilds.libs.streaks import (
    STREAK_MILESTONES,
    achieved_milestones,
    compute_streak,
    displayed_streak,
    next_milestone,
    streak_stats,
)

TODAY = date(2024, 3, 15)
YESTERDAY = TODAY - timedelta(days=1)


def test_first_activity_starts_streak():
    update = compute_streak(None, 0, 0, TODAY)
    assert (update.current_streak, update.longest_streak, update.changed) == (1, 1, True)


def test_first_activity_keeps_larger_longest():
    update = compute_streak(None, 0, 12, TODAY)
    assert (update.current_streak, update.longest_streak) == (1, 12)


@pytest.mark.parametrize("current,longest", [(0, 0), (1, 1), (4, 10), (9, 9), (364, 400)])
def test_yesterday_extends_streak_by_one(current, longest):
    update = compute_streak(YESTERDAY, current, longest, TODAY)
    assert update.current_streak == current + 1
    assert update.longest_streak == max(current + 1, longest)
    assert update.changed


@pytest.mark.parametrize("current,longest", [(0, 0), (3, 7), (30, 30)])
def test_same_day_is_noop(current, longest):
    update = compute_streak(TODAY, current, longest, TODAY)
    assert (update.current_streak, update.longest_streak, update.changed) == (current, longest, False)


@pytest.mark.parametrize("gap", [2, 3, 10, 365])
def test_gap_resets_to_one(gap):
    update = compute_streak(TODAY - timedelta(days=gap), 20, 25, TODAY)
    assert (update.current_streak, update.longest_streak) == (1, 25)


def test_gap_with_empty_longest_records_one():
    update = compute_streak(TODAY - timedelta(days=5), 0, 0, TODAY)
    assert update.longest_streak == 1


def test_future_last_activity_resets():
    update = compute_streak(TODAY + timedelta(days=1), 5, 8, TODAY)
    assert (update.current_streak, update.longest_streak) == (1, 8)


def test_displayed_streak_hides_broken_streak():
    assert displayed_streak(TODAY, 4, TODAY) == 4
    assert displayed_streak(YESTERDAY, 4, TODAY) == 4
    assert displayed_streak(TODAY - timedelta(days=2), 4, TODAY) == 0
    assert displayed_streak(None, 0, TODAY) == 0


def test_milestone_table_is_ascending():
    days = [m.days for m in STREAK_MILESTONES]
    assert days == [7, 30, 100, 365]


@pytest.mark.parametrize("streak,expected", [(0, []), (6, []), (7, [7]), (45, [7, 30]), (365, [7, 30, 100, 365])])
def test_achieved_milestones(streak, expected):
    assert [m.days for m in achieved_milestones(streak)] == expected


def test_achieved_milestones_are_monotonic():
    previous = set()
    for streak in range(0, 400):
        current = {m.days for m in achieved_milestones(streak)}
        assert previous <= current
        previous = current


def test_next_milestone():
    assert next_milestone(0).days == 7
    assert next_milestone(7).days == 30
    assert next_milestone(365) is None


def test_streak_stats():
    rows = [
        {"current_streak": 5, "last_activity_date": TODAY},
        {"current_streak": 12, "last_activity_date": YESTERDAY},
        {"current_streak": 40, "last_activity_date": TODAY - timedelta(days=3)},
        {"current_streak": 0, "last_activity_date": None},
    ]
    stats = streak_stats(rows, TODAY)
    assert stats.total_users == 4
    assert stats.active_streaks == 2
    assert stats.streak_rate == 50.0
    assert stats.top_streak == 12


def test_streak_stats_with_no_users():
    stats = streak_stats([], TODAY)
    assert (stats.total_users, stats.active_streaks, stats.streak_rate, stats.top_streak) == (0, 0, 0.0, 0)
