# assessments/models.py
from datetime import timedelta
import string

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.crypto import get_random_string

from exams.models import Exam
from .sampler import AssignedQuestion


def generate_access_code():
    return get_random_string(
        settings.CBT_ACCESS_CODE_LENGTH,
        allowed_chars=string.ascii_uppercase + string.digits,
    )


class ExamSchedule(models.Model):
    """A student's booking to sit an exam inside a fixed window."""

    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='schedules')
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_schedules')
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    access_code = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SCHEDULED)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['starts_at']
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'student'],
                condition=~Q(status='cancelled'),
                name='unique_active_schedule_per_student',
            ),
        ]

    def save(self, *args, **kwargs):
        if not self.access_code:
            self.access_code = generate_access_code()
        self.access_code = self.access_code.upper()
        super().save(*args, **kwargs)

    def is_open(self, now):
        return self.starts_at <= now <= self.ends_at

    def __str__(self):
        return f"{self.student} - {self.exam.title} @ {self.starts_at:%Y-%m-%d %H:%M}"


class StudentExam(models.Model):
    """
    One student's attempt at one scheduled exam.

    ``assigned_questions`` holds value copies of the sampled questions (see
    ``assessments.sampler.AssignedQuestion``); scoring only ever reads from
    it, so later edits to the question bank never reach an existing attempt.
    """

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        EXPIRED = "expired", "Expired"  # schedule window closed before submission
        TIMEOUT = "timeout", "Timed Out"  # exam duration ran out before submission

    TERMINAL_STATUSES = (Status.COMPLETED, Status.EXPIRED, Status.TIMEOUT)

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_attempts')
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='attempts')
    # One attempt per schedule; the unique index serialises concurrent starts
    schedule = models.OneToOneField(ExamSchedule, on_delete=models.CASCADE, related_name='attempt')

    assigned_questions = models.JSONField(default=list)
    answers = models.JSONField(default=dict, blank=True)

    score = models.PositiveIntegerField(null=True, blank=True)
    # Copied from the exam when the attempt starts
    duration_minutes = models.PositiveIntegerField(default=0)
    passing_score = models.PositiveIntegerField(default=0)

    total_marks = models.PositiveIntegerField(default=0)
    percentage = models.PositiveIntegerField(null=True, blank=True)
    passed = models.BooleanField(null=True)
    result_details = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-started_at']

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def snapshot(self):
        return [AssignedQuestion.from_dict(item) for item in self.assigned_questions]

    @property
    def duration_deadline(self):
        return self.started_at + timedelta(minutes=self.duration_minutes)

    @property
    def deadline(self):
        return min(self.schedule.ends_at, self.duration_deadline)

    def is_overdue(self, now):
        return self.status == self.Status.IN_PROGRESS and now > self.deadline

    def expiry_status(self):
        if self.schedule.ends_at <= self.duration_deadline:
            return self.Status.EXPIRED
        return self.Status.TIMEOUT

    def time_remaining_seconds(self, now):
        if self.is_terminal:
            return 0
        return max(0, int((self.deadline - now).total_seconds()))

    def __str__(self):
        return f"{self.student} - {self.exam.title} ({self.status})"
