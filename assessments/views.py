from django.db.models import Avg, Case, Count, F, Max, Min, Q, Value, When
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, status, views
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from exams.models import Exam
from .exceptions import InvalidAnswerShape
from .models import ExamSchedule, StudentExam
from .permissions import IsSchoolStaff, IsStudent
from .serializers import (
    ActiveAttemptSerializer, AnswersSerializer, ExamResultRowSerializer,
    ExamScheduleSerializer, ResultHistorySerializer, ResultSerializer,
    VerifyAccessSerializer,
)
from .services import (
    expire_overdue_attempts, record_answers, refresh_attempt_state,
    start_attempt, submit_answers,
)


def _answers_from(request):
    serializer = AnswersSerializer(data=request.data)
    if not serializer.is_valid():
        raise InvalidAnswerShape(serializer.errors)
    return serializer.validated_data['answers']


# --- STUDENT VIEWS ---

class StudentScheduleListView(generics.ListAPIView):
    """Upcoming and running exams for the logged-in student."""
    permission_classes = [IsStudent]
    serializer_class = ExamScheduleSerializer
    pagination_class = None

    def get_queryset(self):
        expire_overdue_attempts(StudentExam.objects.filter(student=self.request.user))
        return ExamSchedule.objects.filter(
            student=self.request.user,
            status__in=[ExamSchedule.Status.SCHEDULED, ExamSchedule.Status.IN_PROGRESS],
        ).select_related('exam', 'exam__tutor')


class VerifyAccessView(views.APIView):
    """
    Student enters the access code for a schedule.
    Creates the attempt (sampling its questions) on first access and
    returns the same questions on every later access.
    """
    permission_classes = [IsStudent]

    def post(self, request):
        payload = VerifyAccessSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        schedule = get_object_or_404(
            ExamSchedule,
            id=payload.validated_data['scheduleId'],
            student=request.user,
        )
        now = timezone.now()
        attempt, created = start_attempt(schedule, payload.validated_data['accessCode'], now=now)

        data = ActiveAttemptSerializer(attempt, context={'now': now}).data
        return Response(
            {"message": "Access granted", "data": data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class StudentAttemptMixin:
    permission_classes = [IsStudent]

    def get_attempt(self, pk):
        attempt = get_object_or_404(
            StudentExam.objects.select_related('exam', 'schedule'),
            id=pk,
            student=self.request.user,
        )
        return refresh_attempt_state(attempt)


class AttemptDetailView(StudentAttemptMixin, views.APIView):
    """Resume an attempt (e.g. after a page reload)."""

    def get(self, request, pk):
        attempt = self.get_attempt(pk)
        return Response(ActiveAttemptSerializer(attempt).data)


class SaveAnswersView(StudentAttemptMixin, views.APIView):
    """Periodic autosave of answers while the exam is running."""

    def put(self, request, pk):
        attempt = self.get_attempt(pk)
        attempt = record_answers(attempt.pk, _answers_from(request))
        return Response({"status": attempt.status, "answers": attempt.answers})


class SubmitExamView(StudentAttemptMixin, views.APIView):
    """
    Student submits answers.
    Scores against the attempt's snapshot; a second submit gets 409.
    """

    def post(self, request, pk):
        attempt = get_object_or_404(StudentExam, id=pk, student=request.user)
        result = submit_answers(attempt.pk, _answers_from(request))
        attempt.refresh_from_db()

        if not attempt.exam.show_result_immediately:
            return Response({"message": "Exam submitted successfully", "status": attempt.status})

        data = result.to_dict()
        data['status'] = attempt.status
        return Response({"message": "Exam submitted successfully", "data": data})


class MyResultView(views.APIView):
    permission_classes = [IsStudent]

    def get(self, request, schedule_id):
        attempt = get_object_or_404(
            StudentExam.objects.select_related('exam', 'schedule'),
            schedule_id=schedule_id,
            student=request.user,
        )
        attempt = refresh_attempt_state(attempt)
        return Response(ResultSerializer(attempt).data)


class HistoryPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100


class ResultHistoryView(generics.ListAPIView):
    """All attempts of the logged-in student, most recent first."""
    permission_classes = [IsStudent]
    serializer_class = ResultHistorySerializer
    pagination_class = HistoryPagination

    def get_queryset(self):
        queryset = StudentExam.objects.filter(student=self.request.user)
        expire_overdue_attempts(queryset)
        return queryset.select_related('exam').order_by('-started_at')


# --- TUTOR / SCHOOL VIEWS ---

class SchoolExamMixin:
    permission_classes = [IsSchoolStaff]

    def get_exam(self):
        return get_object_or_404(Exam, id=self.kwargs['exam_id'], school=self.request.user.school)


class ExamResultsView(SchoolExamMixin, generics.ListAPIView):
    """Results table for one exam, best score first."""
    serializer_class = ExamResultRowSerializer
    pagination_class = None

    def get_queryset(self):
        exam = self.get_exam()
        queryset = StudentExam.objects.filter(exam=exam)
        expire_overdue_attempts(queryset)

        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(student__first_name__icontains=search)
                | Q(student__last_name__icontains=search)
                | Q(student__email__icontains=search)
                | Q(student__registration_number__icontains=search)
            )
        return queryset.select_related('student').order_by(F('score').desc(nulls_last=True), 'student__last_name')


GRADE_BANDS = (('A', 70), ('B', 60), ('C', 50), ('D', 40))


class ExamStatisticsView(SchoolExamMixin, views.APIView):

    def get(self, request, exam_id):
        exam = self.get_exam()
        attempts = StudentExam.objects.filter(exam=exam)
        expire_overdue_attempts(attempts)

        stats = attempts.aggregate(
            total_students=Count('id'),
            completed_count=Count('id', filter=Q(status=StudentExam.Status.COMPLETED)),
            expired_count=Count('id', filter=Q(status__in=[StudentExam.Status.EXPIRED, StudentExam.Status.TIMEOUT])),
            in_progress_count=Count('id', filter=Q(status=StudentExam.Status.IN_PROGRESS)),
            passed_count=Count('id', filter=Q(passed=True)),
            average_score=Avg('score'),
            highest_score=Max('score'),
            lowest_score=Min('score'),
            average_percentage=Avg('percentage'),
        )

        grade = Case(
            *[When(percentage__gte=floor, then=Value(letter)) for letter, floor in GRADE_BANDS],
            default=Value('F'),
        )
        distribution = (
            attempts.filter(status__in=StudentExam.TERMINAL_STATUSES)
            .annotate(grade=grade)
            .values('grade')
            .annotate(count=Count('id'))
            .order_by('grade')
        )

        return Response({
            "totalStudents": stats['total_students'],
            "completedCount": stats['completed_count'],
            "expiredCount": stats['expired_count'],
            "inProgressCount": stats['in_progress_count'],
            "passedCount": stats['passed_count'],
            "averageScore": round(float(stats['average_score'] or 0), 2),
            "highestScore": stats['highest_score'] or 0,
            "lowestScore": stats['lowest_score'] or 0,
            "averagePercentage": round(float(stats['average_percentage'] or 0), 2),
            "gradeDistribution": list(distribution),
        })
