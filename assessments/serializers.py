from django.utils import timezone
from rest_framework import serializers

from .models import ExamSchedule, StudentExam

# --- Request payloads ---

class VerifyAccessSerializer(serializers.Serializer):
    scheduleId = serializers.IntegerField()
    accessCode = serializers.CharField(max_length=20)


class AnswersSerializer(serializers.Serializer):
    answers = serializers.DictField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=False)
    )

# --- Schedules ---

class ExamScheduleSerializer(serializers.ModelSerializer):
    examId = serializers.IntegerField(source='exam_id', read_only=True)
    examTitle = serializers.CharField(source='exam.title', read_only=True)
    description = serializers.CharField(source='exam.description', read_only=True)
    durationMinutes = serializers.IntegerField(source='exam.duration_minutes', read_only=True)
    tutorName = serializers.SerializerMethodField()
    startsAt = serializers.DateTimeField(source='starts_at', read_only=True)
    endsAt = serializers.DateTimeField(source='ends_at', read_only=True)

    class Meta:
        model = ExamSchedule
        fields = ['id', 'examId', 'examTitle', 'description', 'durationMinutes', 'tutorName', 'startsAt', 'endsAt', 'status']

    def get_tutorName(self, obj):
        tutor = obj.exam.tutor
        return tutor.get_full_name() if tutor else None

# --- Attempts ---

class ActiveAttemptSerializer(serializers.ModelSerializer):
    """What the exam-taking screen needs. Never includes the answer key."""
    scheduleId = serializers.IntegerField(source='schedule_id', read_only=True)
    examId = serializers.IntegerField(source='exam_id', read_only=True)
    examTitle = serializers.CharField(source='exam.title', read_only=True)
    durationMinutes = serializers.IntegerField(source='duration_minutes', read_only=True)
    startedAt = serializers.DateTimeField(source='started_at', read_only=True)
    totalMarks = serializers.IntegerField(source='total_marks', read_only=True)
    timeRemainingSeconds = serializers.SerializerMethodField()
    questions = serializers.SerializerMethodField()

    class Meta:
        model = StudentExam
        fields = [
            'id', 'scheduleId', 'examId', 'examTitle', 'durationMinutes', 'status',
            'startedAt', 'totalMarks', 'timeRemainingSeconds', 'questions', 'answers',
        ]

    def get_timeRemainingSeconds(self, obj):
        now = self.context.get('now') or timezone.now()
        return obj.time_remaining_seconds(now)

    def get_questions(self, obj):
        return [question.to_student_dict() for question in obj.snapshot]


class ResultSerializer(serializers.ModelSerializer):
    """A student's own result."""
    examId = serializers.IntegerField(source='exam_id', read_only=True)
    examTitle = serializers.CharField(source='exam.title', read_only=True)
    description = serializers.CharField(source='exam.description', read_only=True)
    totalMarks = serializers.IntegerField(source='total_marks', read_only=True)
    startedAt = serializers.DateTimeField(source='started_at', read_only=True)
    submittedAt = serializers.DateTimeField(source='completed_at', read_only=True)
    answers = serializers.JSONField(source='result_details', read_only=True)

    class Meta:
        model = StudentExam
        fields = [
            'id', 'examId', 'examTitle', 'description', 'score', 'totalMarks', 'percentage',
            'passed', 'status', 'startedAt', 'submittedAt', 'answers',
        ]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not instance.exam.show_result_immediately:
            for key in ('score', 'percentage', 'passed', 'answers'):
                data.pop(key, None)
        return data


class ResultHistorySerializer(ResultSerializer):
    class Meta(ResultSerializer.Meta):
        fields = [f for f in ResultSerializer.Meta.fields if f != 'answers']


class ExamResultRowSerializer(serializers.ModelSerializer):
    """One line of the tutor's results table for an exam."""
    studentId = serializers.IntegerField(source='student_id', read_only=True)
    firstName = serializers.CharField(source='student.first_name', read_only=True)
    lastName = serializers.CharField(source='student.last_name', read_only=True)
    email = serializers.CharField(source='student.email', read_only=True)
    registrationNumber = serializers.CharField(source='student.registration_number', read_only=True)
    totalMarks = serializers.IntegerField(source='total_marks', read_only=True)
    startedAt = serializers.DateTimeField(source='started_at', read_only=True)
    submittedAt = serializers.DateTimeField(source='completed_at', read_only=True)

    class Meta:
        model = StudentExam
        fields = [
            'id', 'studentId', 'firstName', 'lastName', 'email', 'registrationNumber',
            'score', 'totalMarks', 'percentage', 'passed', 'status', 'startedAt', 'submittedAt',
        ]
