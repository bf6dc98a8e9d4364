import random
from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command

from assessments.exceptions import AccessDenied, AlreadySubmitted, EmptyQuestionPool, InvalidAnswerShape
from assessments.models import ExamSchedule, StudentExam
from assessments.services import (
    expire_overdue_attempts, get_or_create_attempt, record_answers,
    refresh_attempt_state, start_attempt, submit_answers,
)
from cores.models import AuditLog, PlatformSetting
from exams.models import Exam, Question

pytestmark = pytest.mark.django_db


@pytest.fixture
def attempt(schedule, now):
    attempt, created = get_or_create_attempt(schedule, now=now, rng=random.Random(11))
    assert created
    return attempt


def one_correct_per_difficulty(attempt):
    """Answer one hard, one medium and one easy question right and everything else wrong."""
    difficulty = dict(Question.objects.values_list('id', 'difficulty'))
    answers, seen = {}, set()
    for question in attempt.snapshot:
        level = difficulty[question.question_id]
        if level not in seen:
            seen.add(level)
            answers[str(question.question_id)] = question.correct_answer
        else:
            answers[str(question.question_id)] = "A"
    return answers


# --- Starting ---

def test_first_access_samples_once(schedule, now):
    attempt, created = get_or_create_attempt(schedule, now=now, rng=random.Random(1))
    again, created_again = get_or_create_attempt(schedule, now=now, rng=random.Random(2))

    assert created is True
    assert created_again is False
    assert again.pk == attempt.pk
    assert again.assigned_questions == attempt.assigned_questions
    assert StudentExam.objects.count() == 1

    schedule.refresh_from_db()
    assert schedule.status == ExamSchedule.Status.IN_PROGRESS
    assert attempt.total_marks == 32
    assert AuditLog.objects.filter(action=AuditLog.Action.START).count() == 1


def test_access_code_is_checked_case_insensitively(schedule, now):
    with pytest.raises(AccessDenied):
        start_attempt(schedule, "WRONG1", now=now)

    attempt, created = start_attempt(schedule, schedule.access_code.lower(), now=now, rng=random.Random(1))
    assert created
    assert attempt.status == StudentExam.Status.IN_PROGRESS


def test_cannot_start_outside_the_window(schedule, now):
    with pytest.raises(AccessDenied):
        get_or_create_attempt(schedule, now=schedule.starts_at - timedelta(minutes=1))
    with pytest.raises(AccessDenied):
        get_or_create_attempt(schedule, now=schedule.ends_at + timedelta(minutes=1))
    assert not StudentExam.objects.exists()


def test_cannot_start_cancelled_schedule(schedule, now):
    schedule.status = ExamSchedule.Status.CANCELLED
    schedule.save()
    with pytest.raises(AccessDenied):
        get_or_create_attempt(schedule, now=now)


def test_maintenance_mode_blocks_new_attempts(schedule, now):
    settings = PlatformSetting.load()
    settings.maintenance_mode = True
    settings.save()

    with pytest.raises(AccessDenied):
        start_attempt(schedule, schedule.access_code, now=now)


def test_empty_pool_creates_no_attempt(school, tutor, student, now):
    empty = Exam.objects.create(school=school, tutor=tutor, title="Empty", duration_minutes=30, total_questions=5)
    schedule = ExamSchedule.objects.create(
        exam=empty, student=student, starts_at=now - timedelta(minutes=1), ends_at=now + timedelta(hours=1),
    )
    with pytest.raises(EmptyQuestionPool):
        get_or_create_attempt(schedule, now=now)

    assert not StudentExam.objects.exists()
    schedule.refresh_from_db()
    assert schedule.status == ExamSchedule.Status.SCHEDULED


def test_losing_a_concurrent_start_returns_the_existing_attempt(schedule, now, monkeypatch):
    first, _ = get_or_create_attempt(schedule, now=now, rng=random.Random(1))

    # Make the second start miss the existing row, as a racing request would
    monkeypatch.setattr(StudentExam.objects, 'filter', lambda **kwargs: StudentExam.objects.none())
    second, created = get_or_create_attempt(schedule, now=now, rng=random.Random(2))
    monkeypatch.undo()

    assert created is False
    assert second.pk == first.pk
    assert second.assigned_questions == first.assigned_questions
    assert StudentExam.objects.count() == 1


def test_exam_edits_after_start_do_not_move_deadline_or_pass_mark(attempt, exam, now):
    exam.duration_minutes = 5
    exam.passing_score = 20
    exam.save()

    attempt.refresh_from_db()
    assert refresh_attempt_state(attempt, now=now + timedelta(minutes=10)).status == StudentExam.Status.IN_PROGRESS

    result = submit_answers(attempt.pk, one_correct_per_difficulty(attempt), now=now + timedelta(minutes=20))
    assert result.percentage == 31
    assert result.passed is False


def test_exam_without_pass_mark_uses_platform_default(school, tutor):
    exam = Exam.objects.create(school=school, tutor=tutor, title="Defaults", duration_minutes=30)
    assert exam.passing_score == PlatformSetting.load().default_pass_mark


# --- Submitting ---

def test_marks_follow_the_assigned_questions(attempt, now):
    result = submit_answers(attempt.pk, one_correct_per_difficulty(attempt), now=now + timedelta(minutes=20))

    assert result.total_marks == 32
    assert result.score == 5 + 3 + 2
    assert result.percentage == 31
    assert result.passed is False

    attempt.refresh_from_db()
    assert attempt.status == StudentExam.Status.COMPLETED
    assert attempt.score == 10
    assert attempt.total_marks == sum(question.marks for question in attempt.snapshot)
    assert attempt.completed_at == now + timedelta(minutes=20)
    assert attempt.schedule.status == ExamSchedule.Status.COMPLETED
    assert len(attempt.result_details) == 10


def test_second_submit_is_rejected_and_result_kept(attempt, now):
    answers = {str(question.question_id): question.correct_answer for question in attempt.snapshot}
    submit_answers(attempt.pk, answers, now=now + timedelta(minutes=10))
    attempt.refresh_from_db()
    score, completed_at = attempt.score, attempt.completed_at

    with pytest.raises(AlreadySubmitted):
        submit_answers(attempt.pk, {}, now=now + timedelta(minutes=11))

    attempt.refresh_from_db()
    assert (attempt.score, attempt.completed_at) == (score, completed_at)
    assert attempt.score == 32
    assert AuditLog.objects.filter(action=AuditLog.Action.SUBMIT).count() == 1


@pytest.mark.parametrize("payload", [
    ["A", "B"],
    "A",
    {"abc": "A"},
    {"1": 3},
    {"²": "A"},
])
def test_malformed_answers_are_rejected_before_scoring(attempt, now, payload):
    with pytest.raises(InvalidAnswerShape):
        submit_answers(attempt.pk, payload, now=now)
    attempt.refresh_from_db()
    assert attempt.status == StudentExam.Status.IN_PROGRESS


def test_answers_for_unassigned_questions_are_rejected(attempt, now):
    assigned = {question.question_id for question in attempt.snapshot}
    stranger = Question.objects.exclude(id__in=assigned).first()

    with pytest.raises(InvalidAnswerShape):
        submit_answers(attempt.pk, {str(stranger.pk): "B"}, now=now)


# --- Expiry ---

def test_overdue_attempt_is_auto_submitted_with_saved_answers(attempt, now):
    first = attempt.snapshot[0]
    record_answers(attempt.pk, {str(first.question_id): first.correct_answer}, now=now + timedelta(minutes=5))

    refreshed = refresh_attempt_state(attempt, now=now + timedelta(minutes=61))

    # 60 minute exam inside a 2 hour window: the duration runs out first
    assert refreshed.status == StudentExam.Status.TIMEOUT
    assert refreshed.score == first.marks
    assert refreshed.completed_at == now + timedelta(minutes=60)
    assert AuditLog.objects.filter(action=AuditLog.Action.EXPIRE).count() == 1


def test_window_closing_first_marks_attempt_expired(schedule, now):
    schedule.ends_at = now + timedelta(minutes=30)
    schedule.save()
    attempt, _ = get_or_create_attempt(schedule, now=now, rng=random.Random(4))

    refreshed = refresh_attempt_state(attempt, now=now + timedelta(minutes=31))

    assert refreshed.status == StudentExam.Status.EXPIRED
    assert refreshed.score == 0
    assert refreshed.percentage == 0
    assert refreshed.completed_at == schedule.ends_at


def test_attempt_is_left_alone_before_its_deadline(attempt, now):
    refreshed = refresh_attempt_state(attempt, now=now + timedelta(minutes=59))
    assert refreshed.status == StudentExam.Status.IN_PROGRESS


def test_late_submission_scores_saved_answers_not_the_late_payload(attempt, now):
    everything_right = {str(question.question_id): question.correct_answer for question in attempt.snapshot}

    result = submit_answers(attempt.pk, everything_right, now=now + timedelta(minutes=90))

    assert result.score == 0
    attempt.refresh_from_db()
    assert attempt.status == StudentExam.Status.TIMEOUT
    with pytest.raises(AlreadySubmitted):
        submit_answers(attempt.pk, everything_right, now=now + timedelta(minutes=91))


def test_saved_answers_merge_until_the_attempt_ends(attempt, now):
    first, second = attempt.snapshot[:2]
    record_answers(attempt.pk, {str(first.question_id): "A"}, now=now)
    record_answers(attempt.pk, {str(second.question_id): "C", str(first.question_id): "B"}, now=now)

    attempt.refresh_from_db()
    assert attempt.answers == {str(first.question_id): "B", str(second.question_id): "C"}

    submit_answers(attempt.pk, attempt.answers, now=now)
    with pytest.raises(AlreadySubmitted):
        record_answers(attempt.pk, {str(first.question_id): "D"}, now=now)


def test_restarting_an_expired_attempt_is_refused(attempt, schedule, now):
    with pytest.raises(AlreadySubmitted):
        start_attempt(schedule, schedule.access_code, now=now + timedelta(minutes=70))
    attempt.refresh_from_db()
    assert attempt.status == StudentExam.Status.TIMEOUT


def test_sweep_finalises_only_overdue_attempts(attempt, now):
    assert expire_overdue_attempts(now=now + timedelta(minutes=10)) == 0
    assert expire_overdue_attempts(now=now + timedelta(hours=3)) == 1
    attempt.refresh_from_db()
    assert attempt.is_terminal


def test_expire_attempts_command(schedule):
    attempt, _ = get_or_create_attempt(
        schedule, now=schedule.starts_at + timedelta(minutes=1), rng=random.Random(2),
    )
    StudentExam.objects.filter(pk=attempt.pk).update(started_at=attempt.started_at - timedelta(hours=2))

    out = StringIO()
    call_command('expire_attempts', stdout=out)

    attempt.refresh_from_db()
    assert attempt.status == StudentExam.Status.TIMEOUT
    assert "Auto-submitted 1 overdue attempt(s)" in out.getvalue()
