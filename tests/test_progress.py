from datetime import date, timedelta

import pytest

from relatify.catalog import BadgeType, ExplanationSection, UnknownBadge, UnknownSection, render_sections
from relatify.models import AuthUser, Badge, Explanation, FollowUp, QuizAttempt, UserProgress
from relatify.progress import (
    advance_streak,
    stage_explanation_progress,
    stage_follow_up_badges,
    stage_quiz_result,
)
from relatify.schemas import ExplanationData

TODAY = date(2026, 3, 10)


@pytest.fixture
def progress(db):
    user = AuthUser(email="streak@example.com", username="streak", password_hash="x")
    db.add(user)
    db.commit()
    row = UserProgress(user_id=user.id, total_explanations=0, current_streak=0, longest_streak=0, total_stars=0)
    db.add(row)
    db.commit()
    return row


def test_first_activity_starts_streak(progress):
    advance_streak(progress, TODAY)
    assert (progress.current_streak, progress.longest_streak, progress.last_activity_date) == (1, 1, TODAY)


def test_same_day_keeps_streak(progress):
    progress.current_streak, progress.longest_streak, progress.last_activity_date = 3, 5, TODAY
    advance_streak(progress, TODAY)
    assert (progress.current_streak, progress.longest_streak) == (3, 5)


def test_next_day_extends_streak(progress):
    progress.current_streak, progress.longest_streak, progress.last_activity_date = 5, 5, TODAY - timedelta(days=1)
    advance_streak(progress, TODAY)
    assert (progress.current_streak, progress.longest_streak) == (6, 6)


def test_gap_resets_streak_but_keeps_longest(progress):
    progress.current_streak, progress.longest_streak, progress.last_activity_date = 4, 9, TODAY - timedelta(days=3)
    advance_streak(progress, TODAY)
    assert (progress.current_streak, progress.longest_streak) == (1, 9)


def test_explanation_progress_awards_each_badge_once(db, progress):
    earned = stage_explanation_progress(db, progress, TODAY)
    db.commit()
    assert earned == [BadgeType.FIRST_EXPLANATION]
    assert progress.total_explanations == 1

    earned = stage_explanation_progress(db, progress, TODAY)
    db.commit()
    assert earned == []
    assert db.query(Badge).count() == 1


def test_counts_and_streaks_unlock_milestones(db, progress):
    progress.total_explanations = 9
    progress.current_streak, progress.longest_streak = 6, 6
    progress.last_activity_date = TODAY - timedelta(days=1)
    earned = stage_explanation_progress(db, progress, TODAY)
    db.commit()
    assert set(earned) == {BadgeType.FIRST_EXPLANATION, BadgeType.TEN_EXPLANATIONS, BadgeType.WEEK_STREAK}


def _explanation(db, progress, topic="tides"):
    row = Explanation(user_id=progress.user_id, topic=topic, explanation_data="{}")
    db.add(row)
    db.commit()
    return row.id


def test_quiz_result_pays_only_the_improvement(db, progress):
    explanation_id = _explanation(db, progress)
    assert stage_quiz_result(db, progress, explanation_id, 2, 3) == (2, [])
    db.commit()
    assert stage_quiz_result(db, progress, explanation_id, 1, 3) == (0, [])
    db.commit()
    assert stage_quiz_result(db, progress, explanation_id, 3, 3) == (1, [BadgeType.PERFECT_QUIZ])
    db.commit()
    assert stage_quiz_result(db, progress, explanation_id, 3, 3) == (0, [])
    db.commit()
    assert progress.total_stars == 3
    attempt = db.query(QuizAttempt).one()
    assert (attempt.best_score, attempt.attempts) == (3, 4)


def test_quiz_stars_are_tracked_per_explanation(db, progress):
    first, second = _explanation(db, progress, "tides"), _explanation(db, progress, "volcanoes")
    stage_quiz_result(db, progress, first, 3, 3)
    db.commit()
    assert stage_quiz_result(db, progress, second, 3, 3) == (3, [])
    db.commit()
    assert progress.total_stars == 6


def test_curious_learner_after_ten_follow_ups(db, progress):
    for n in range(10):
        db.add(FollowUp(user_id=progress.user_id, question=f"q{n}", answer='{"content": ""}'))
        db.flush()
        earned = stage_follow_up_badges(db, progress.user_id)
        if n < 9:
            assert earned == []
    assert earned == [BadgeType.CURIOUS_LEARNER]


def test_badge_lookup_is_closed():
    assert BadgeType.from_label("7-Day Streak") is BadgeType.WEEK_STREAK
    assert BadgeType.from_label("Scan Master").icon == "star"
    with pytest.raises(UnknownBadge):
        BadgeType.from_label("Legendary Napper")


def test_section_lookup_is_closed(sample_explanation):
    data = ExplanationData.model_validate(sample_explanation)
    assert ExplanationSection.from_id("analogy").render(data)["content"] == sample_explanation["analogy"]
    with pytest.raises(UnknownSection):
        ExplanationSection.from_id("summary")
    assert len(render_sections(data)) == 8


def test_unknown_stored_badge_is_reported(client, ready_headers, session_factory):
    session = session_factory()
    try:
        user_id = session.query(UserProgress).one().user_id
        session.add(Badge(user_id=user_id, badge_type="Mystery Badge"))
        session.commit()
    finally:
        session.close()
    resp = client.get("/progress", headers=ready_headers)
    assert resp.status_code == 500
    assert "Mystery Badge" in resp.json()["error"]


def test_progress_endpoint_for_new_user(client, ready_headers):
    body = client.get("/progress", headers=ready_headers).json()
    assert body == {
        "total_explanations": 0,
        "current_streak": 0,
        "longest_streak": 0,
        "total_stars": 0,
        "last_activity_date": None,
        "badges": [],
        "recent_activity": [],
    }
