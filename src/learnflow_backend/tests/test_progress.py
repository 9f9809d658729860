from datetime import date, datetime, timedelta, timezone

import pytest

from learnflow_backend.api.exceptions import BadRequestException
from learnflow_backend.interface.progress import CourseProgressSummary
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.assignment import IndexAssignment
from learnflow_backend.model.auth import UserSession
from learnflow_backend.model.progress import LectureProgress
from learnflow_backend.services.assignments import resolve_assigned_courses
from learnflow_backend.services.progress import (
    completion_percentage,
    compute_progress,
    compute_streak,
    current_streak,
    index_rollup,
    record_progress,
    should_auto_complete,
    summarize,
)
from learnflow_backend.utils import ensure_utc


class TestCompletionPercentage:

    @pytest.mark.parametrize("completed,total,expected", [
        (0, 0, 0),
        (0, 5, 0),
        (5, 5, 100),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),
        (1, 200, 1),
        (1, 201, 0),
    ])
    def test_rounding(self, completed, total, expected):
        assert completion_percentage(completed, total) == expected


class TestAutoComplete:

    def test_threshold_is_ninety_percent(self):
        assert not should_auto_complete(89, 100)
        assert should_auto_complete(90, 100)
        assert should_auto_complete(95, 101)

    def test_requires_duration(self):
        assert not should_auto_complete(500, 0)
        assert not should_auto_complete(500, None)
        assert not should_auto_complete(None, 100)

    def test_very_short_lecture(self):
        assert not should_auto_complete(0, 1)
        assert should_auto_complete(1, 1)


class TestStreak:

    today = date(2026, 3, 15)

    def days_ago(self, *offsets):
        return [self.today - timedelta(days=o) for o in offsets]

    def test_consecutive_days_ending_today(self):
        assert compute_streak(self.days_ago(0, 1, 2), self.today) == 3

    def test_streak_may_end_yesterday(self):
        assert compute_streak(self.days_ago(1, 2, 3), self.today) == 3

    def test_gap_breaks_the_streak(self):
        assert compute_streak(self.days_ago(0, 1, 3, 4, 5), self.today) == 2

    def test_duplicate_days_count_once(self):
        assert compute_streak(self.days_ago(0, 0, 1, 1), self.today) == 2

    def test_no_recent_login(self):
        assert compute_streak(self.days_ago(2, 3), self.today) == 0
        assert compute_streak([], self.today) == 0

    def test_window_is_thirty_days(self):
        assert compute_streak(self.days_ago(*range(0, 45)), self.today) == 30

    def test_streak_from_sessions(self, db, make_user):
        learner = make_user("streaky", UserRole.CANDIDATE)
        now = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
        for offset in (0, 0, 1, 2, 4):
            db.add(UserSession(user_id=learner.id, login_at=now - timedelta(days=offset)))
        db.commit()

        assert current_streak(db, learner.id, now) == 3


class TestRecordProgress:

    @pytest.fixture
    def lecture(self, db, make_user, make_tree):
        trainer = make_user("trainer_p", UserRole.TRAINER)
        index = make_tree(trainer, lectures=1, duration=100)
        return index.courses[0].sections[0].lectures[0]

    @pytest.fixture
    def learner(self, make_user):
        return make_user("learner_p", UserRole.CANDIDATE)

    def test_time_is_additive(self, db, lecture, learner):
        record_progress(db, learner.id, lecture, time_spent_seconds=10)
        progress = record_progress(db, learner.id, lecture, time_spent_seconds=15)
        db.commit()

        assert progress.time_spent_seconds == 25
        assert not progress.is_completed
        assert db.query(LectureProgress).count() == 1

    def test_completion_is_idempotent(self, db, lecture, learner):
        first_time = datetime(2026, 1, 1, tzinfo=timezone.utc)
        progress = record_progress(db, learner.id, lecture, time_spent_seconds=30, is_completed=True, now=first_time)
        completed_at = progress.completed_at

        progress = record_progress(db, learner.id, lecture, time_spent_seconds=5, is_completed=True,
                                   now=first_time + timedelta(days=1))
        db.commit()

        assert progress.is_completed
        assert ensure_utc(progress.completed_at) == ensure_utc(completed_at) == first_time
        assert progress.time_spent_seconds == 35

    def test_completion_never_reverts(self, db, lecture, learner):
        record_progress(db, learner.id, lecture, is_completed=True)
        progress = record_progress(db, learner.id, lecture, time_spent_seconds=3, is_completed=False)
        db.commit()

        assert progress.is_completed

    def test_auto_complete_on_watch_time(self, db, lecture, learner):
        progress = record_progress(db, learner.id, lecture, time_spent_seconds=20, session_watched_seconds=50)
        assert not progress.is_completed

        progress = record_progress(db, learner.id, lecture, time_spent_seconds=40, session_watched_seconds=90)
        db.commit()

        assert progress.is_completed
        assert progress.completed_at is not None

    def test_negative_delta_is_rejected(self, db, lecture, learner):
        with pytest.raises(BadRequestException):
            record_progress(db, learner.id, lecture, time_spent_seconds=-1)


class TestRollups:

    def test_summarize(self):
        rows = [
            LectureProgress(is_completed=True, time_spent_seconds=10),
            LectureProgress(is_completed=False, time_spent_seconds=5),
        ]
        summary = summarize(rows, total_lectures=4)
        assert summary.total_lectures == 4
        assert summary.completed_lectures == 1
        assert summary.total_time_spent_seconds == 15

    def test_index_rollup_counts_completed_courses(self):
        summaries = [
            CourseProgressSummary(course_id="c1", index_id="i1", total_lectures=2, completed_lectures=2),
            CourseProgressSummary(course_id="c2", index_id="i1", total_lectures=2, completed_lectures=1),
            CourseProgressSummary(course_id="c3", index_id="i2", total_lectures=0, completed_lectures=0),
        ]
        rollup = {r.index_id: r for r in index_rollup(summaries, {"i1": "Basics", "i2": "Advanced"})}

        assert rollup["i1"].course_count == 2
        assert rollup["i1"].completed_courses == 1
        assert rollup["i1"].completion_percentage == 75
        assert rollup["i2"].completed_courses == 0
        assert rollup["i2"].completion_percentage == 0

    def test_compute_progress_over_resolved_courses(self, db, make_user, make_tree):
        trainer = make_user("trainer_r", UserRole.TRAINER)
        learner = make_user("learner_r", UserRole.CANDIDATE, created_by=trainer)
        index = make_tree(trainer, courses=2, lectures=2)
        db.add(IndexAssignment(user_id=learner.id, index_id=index.id, assigned_by=trainer.id))
        db.commit()

        lecture = index.courses[0].sections[0].lectures[0]
        record_progress(db, learner.id, lecture, time_spent_seconds=12, is_completed=True)
        db.commit()

        summaries = {s.course_id: s for s in compute_progress(db, learner.id, resolve_assigned_courses(db, learner.id))}

        first, second = index.courses[0], index.courses[1]
        assert summaries[first.id].completed_lectures == 1
        assert summaries[first.id].completion_percentage == 50
        assert summaries[first.id].time_spent_seconds == 12
        assert summaries[second.id].completion_percentage == 0
