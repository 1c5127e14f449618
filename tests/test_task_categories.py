# tests/test_task_categories.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from gemdesk.tasks.task_categories import categorize, group_tasks, task_stats
from gemdesk.tasks.task_models import TaskCategory, TaskStatus

from .fakes import make_task

UTC = timezone.utc
NOW_DT = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
NOW = NOW_DT.timestamp()
YESTERDAY = (NOW_DT - timedelta(days=1)).timestamp()
TODAY_MORNING = NOW_DT.replace(hour=8).timestamp()
TODAY_LATE = NOW_DT.replace(hour=23, minute=30).timestamp()
TOMORROW = (NOW_DT + timedelta(days=1)).timestamp()


def test_overdue_open_work_stays_present() -> None:
    for status in (TaskStatus.PENDING, TaskStatus.ONGOING, TaskStatus.DELAYED):
        assert categorize(status, YESTERDAY, NOW, UTC) == TaskCategory.PRESENT


def test_completed_before_today_is_past() -> None:
    assert categorize(TaskStatus.COMPLETED, YESTERDAY, NOW, UTC) == TaskCategory.PAST


def test_today_is_present_whatever_the_hour_or_status() -> None:
    assert categorize(TaskStatus.PENDING, TODAY_MORNING, NOW, UTC) == TaskCategory.PRESENT
    assert categorize(TaskStatus.PENDING, TODAY_LATE, NOW, UTC) == TaskCategory.PRESENT
    assert categorize(TaskStatus.COMPLETED, TODAY_MORNING, NOW, UTC) == TaskCategory.PRESENT


def test_future_days_are_future() -> None:
    assert categorize(TaskStatus.COMPLETED, TOMORROW, NOW, UTC) == TaskCategory.FUTURE
    assert categorize(TaskStatus.PENDING, TOMORROW, NOW, UTC) == TaskCategory.FUTURE


def test_day_boundary_follows_timezone() -> None:
    # 23:30 UTC on the 10th is already the 11th in UTC+5.
    plus5 = timezone(timedelta(hours=5))
    assert categorize(TaskStatus.PENDING, TODAY_LATE, NOW, UTC) == TaskCategory.PRESENT
    assert categorize(TaskStatus.PENDING, TODAY_LATE, NOW, plus5) == TaskCategory.FUTURE


def test_categorize_is_pure() -> None:
    first = categorize(TaskStatus.ONGOING, YESTERDAY, NOW, UTC)
    assert all(categorize(TaskStatus.ONGOING, YESTERDAY, NOW, UTC) == first for _ in range(5))


def test_group_tasks_partitions_and_orders_by_deadline() -> None:
    tasks = [
        make_task("late", deadline=TODAY_LATE),
        make_task("done", deadline=YESTERDAY, status=TaskStatus.COMPLETED),
        make_task("next", deadline=TOMORROW),
        make_task("early", deadline=TODAY_MORNING),
        make_task("overdue", deadline=YESTERDAY, status=TaskStatus.ONGOING),
    ]
    buckets = group_tasks(tasks, NOW, UTC)

    assert [t.id for t in buckets.present] == ["overdue", "early", "late"]
    assert [t.id for t in buckets.future] == ["next"]
    assert [t.id for t in buckets.past] == ["done"]
    assert buckets.get(TaskCategory.FUTURE) is buckets.future


def test_task_stats_counts_each_status() -> None:
    tasks = [
        make_task("a", status=TaskStatus.PENDING),
        make_task("b", status=TaskStatus.PENDING),
        make_task("c", status=TaskStatus.DELAYED),
        make_task("d", status=TaskStatus.COMPLETED),
    ]
    stats = task_stats(tasks)
    assert (stats.total, stats.pending, stats.ongoing, stats.completed, stats.delayed) == (4, 2, 0, 1, 1)
