# assessments/services.py
"""
Attempt lifecycle.

    (no attempt) --start--> in_progress --submit--> completed
                                 |
                                 +--deadline passes--> expired | timeout

The attempt row is the unit of mutual exclusion: starts lock the schedule
row, submissions and expiries lock the attempt row. Expiry is detected lazily
whenever an attempt is touched (and by the ``expire_attempts`` command); an
overdue attempt is auto-submitted with the answers last saved on it.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from cores.models import AuditLog, PlatformSetting
from exams.models import Question
from .exceptions import AccessDenied, AlreadySubmitted, InvalidAnswerShape
from .models import ExamSchedule, StudentExam
from .sampler import assign_questions, default_rng
from .scoring import score_answers

logger = logging.getLogger(__name__)


def get_questions_for_exam(exam_id):
    return list(Question.objects.for_exam(exam_id))


def normalize_answers(answers):
    """Validate a submission payload and key it by string question id."""
    if not isinstance(answers, dict):
        raise InvalidAnswerShape()
    normalized = {}
    for question_id, answer in answers.items():
        if not str(question_id).strip().isdecimal():
            raise InvalidAnswerShape(f"'{question_id}' is not a question id.")
        if not isinstance(answer, str):
            raise InvalidAnswerShape(f"Answer for question {question_id} must be a string.")
        normalized[str(int(question_id))] = answer
    return normalized


def _check_assigned(attempt, answers):
    assigned = {str(item['questionId']) for item in attempt.assigned_questions}
    unknown = sorted(set(answers) - assigned, key=int)
    if unknown:
        raise InvalidAnswerShape(
            f"Questions {', '.join(unknown)} are not part of this attempt."
        )


def _lock_attempt(attempt_id):
    return (
        StudentExam.objects.select_for_update()
        .select_related('exam', 'schedule', 'student')
        .get(pk=attempt_id)
    )


def _finalize(attempt, answers, status, completed_at, action, actor=None):
    result = score_answers(attempt.snapshot, answers, attempt.passing_score)

    attempt.answers = answers
    attempt.score = result.score
    attempt.total_marks = result.total_marks
    attempt.percentage = result.percentage
    attempt.passed = result.passed
    attempt.result_details = [detail.to_dict() for detail in result.details]
    attempt.status = status
    attempt.completed_at = completed_at
    attempt.save()

    ExamSchedule.objects.filter(pk=attempt.schedule_id).update(status=ExamSchedule.Status.COMPLETED)
    AuditLog.record(
        action,
        attempt,
        actor=actor,
        details=f"{status}: scored {result.score}/{result.total_marks} ({result.percentage}%)",
    )
    return result


def get_or_create_attempt(schedule, now=None, rng=None):
    """
    Return ``(attempt, created)`` for a schedule. Questions are sampled only
    when the attempt is created; later calls get the stored snapshot back.
    """
    now = now or timezone.now()
    with transaction.atomic():
        schedule = (
            ExamSchedule.objects.select_for_update()
            .select_related('exam', 'student')
            .get(pk=schedule.pk)
        )
        attempt = StudentExam.objects.filter(schedule=schedule).select_related('exam', 'schedule').first()
        if attempt is not None:
            return refresh_attempt_state(attempt, now=now), False

        if schedule.status not in (ExamSchedule.Status.SCHEDULED, ExamSchedule.Status.IN_PROGRESS):
            raise AccessDenied("Exam not found or not scheduled.")
        if now < schedule.starts_at:
            raise AccessDenied("Exam has not started yet.")
        if now > schedule.ends_at:
            raise AccessDenied("Exam time has expired.")

        exam = schedule.exam
        snapshot = assign_questions(
            exam,
            get_questions_for_exam(exam.pk),
            rng=rng or default_rng(schedule.student_id, schedule.pk),
        )
        try:
            with transaction.atomic():
                attempt = StudentExam.objects.create(
                    student=schedule.student,
                    exam=exam,
                    schedule=schedule,
                    assigned_questions=[question.to_dict() for question in snapshot],
                    total_marks=sum(question.marks for question in snapshot),
                    duration_minutes=exam.duration_minutes,
                    passing_score=exam.passing_score or 0,
                    status=StudentExam.Status.IN_PROGRESS,
                    started_at=now,
                )
        except IntegrityError:
            # A concurrent start won the unique schedule slot
            attempt = StudentExam.objects.select_related('exam', 'schedule').get(schedule=schedule)
            logger.info("Attempt %s already started for schedule %s", attempt.pk, schedule.pk)
            return refresh_attempt_state(attempt, now=now), False

        schedule.status = ExamSchedule.Status.IN_PROGRESS
        schedule.save(update_fields=['status'])

        AuditLog.record(
            AuditLog.Action.START,
            attempt,
            actor=schedule.student,
            details=f"Assigned {len(snapshot)} questions worth {attempt.total_marks} marks",
        )

    logger.info(
        "Attempt %s started: student=%s exam=%s questions=%s total_marks=%s",
        attempt.pk, attempt.student_id, exam.pk, len(snapshot), attempt.total_marks,
    )
    return attempt, True


def start_attempt(schedule, access_code, now=None, rng=None):
    """Verify exam credentials, then fetch or create the student's attempt."""
    if PlatformSetting.load().maintenance_mode:
        raise AccessDenied("The platform is under maintenance. Please try again later.")
    if schedule.access_code != (access_code or '').strip().upper():
        raise AccessDenied("Invalid access code.")

    attempt, created = get_or_create_attempt(schedule, now=now, rng=rng)
    if attempt.status == StudentExam.Status.COMPLETED:
        raise AlreadySubmitted()
    if attempt.is_terminal:
        raise AlreadySubmitted("Exam time has expired; your saved answers were submitted.")
    return attempt, created


def refresh_attempt_state(attempt, now=None):
    """Auto-submit ``attempt`` if its deadline has passed; returns the current row."""
    now = now or timezone.now()
    if not attempt.is_overdue(now):
        return attempt

    with transaction.atomic():
        attempt = _lock_attempt(attempt.pk)
        if attempt.is_overdue(now):
            status = attempt.expiry_status()
            _finalize(attempt, attempt.answers, status, attempt.deadline, AuditLog.Action.EXPIRE)
            logger.info("Attempt %s auto-submitted as %s", attempt.pk, status)
    return attempt


def expire_overdue_attempts(queryset=None, now=None):
    """Finalise every overdue in-progress attempt in ``queryset``; returns how many."""
    now = now or timezone.now()
    if queryset is None:
        queryset = StudentExam.objects.all()
    pending = queryset.filter(status=StudentExam.Status.IN_PROGRESS).select_related('exam', 'schedule')

    expired = 0
    for attempt in pending:
        if attempt.is_overdue(now):
            refresh_attempt_state(attempt, now=now)
            expired += 1
    return expired


def record_answers(attempt_id, answers, now=None):
    """Save in-progress answers so an auto-submit has something to score."""
    now = now or timezone.now()
    answers = normalize_answers(answers)

    with transaction.atomic():
        attempt = _lock_attempt(attempt_id)
        if attempt.is_terminal:
            raise AlreadySubmitted()
        if attempt.is_overdue(now):
            _finalize(attempt, attempt.answers, attempt.expiry_status(), attempt.deadline, AuditLog.Action.EXPIRE)
            return attempt

        _check_assigned(attempt, answers)
        attempt.answers = {**attempt.answers, **answers}
        attempt.save(update_fields=['answers'])
    return attempt


def submit_answers(attempt_id, answers, now=None):
    """
    Score a submission exactly once and return the ``ScoreResult``.

    A second call raises ``AlreadySubmitted`` and leaves the stored result
    untouched. A submission that arrives after the deadline is not rejected:
    the attempt is auto-submitted with its last saved answers instead.
    """
    now = now or timezone.now()
    answers = normalize_answers(answers)

    with transaction.atomic():
        attempt = _lock_attempt(attempt_id)
        if attempt.is_terminal:
            logger.warning("Rejected duplicate submission for attempt %s", attempt.pk)
            raise AlreadySubmitted()

        if attempt.is_overdue(now):
            status = attempt.expiry_status()
            logger.info("Late submission for attempt %s; auto-submitting as %s", attempt.pk, status)
            return _finalize(
                attempt, attempt.answers, status, attempt.deadline,
                AuditLog.Action.EXPIRE, actor=attempt.student,
            )

        _check_assigned(attempt, answers)
        result = _finalize(
            attempt, answers, StudentExam.Status.COMPLETED, now,
            AuditLog.Action.SUBMIT, actor=attempt.student,
        )

    logger.info(
        "Attempt %s submitted: score=%s/%s percentage=%s",
        attempt.pk, result.score, result.total_marks, result.percentage,
    )
    return result
