from django.urls import path
from .views import (
    StudentScheduleListView, VerifyAccessView, AttemptDetailView, SaveAnswersView,
    SubmitExamView, MyResultView, ResultHistoryView, ExamResultsView, ExamStatisticsView,
)

urlpatterns = [
    # --- Student Exam Flow ---
    path('schedules/mine/', StudentScheduleListView.as_view(), name='my-schedules'),
    path('schedules/verify-access/', VerifyAccessView.as_view(), name='verify-access'),
    path('attempts/<int:pk>/', AttemptDetailView.as_view(), name='attempt-detail'),
    path('attempts/<int:pk>/answers/', SaveAnswersView.as_view(), name='attempt-answers'),
    path('attempts/<int:pk>/submit/', SubmitExamView.as_view(), name='attempt-submit'),

    # --- Results ---
    path('results/mine/<int:schedule_id>/', MyResultView.as_view(), name='my-result'),
    path('results/history/', ResultHistoryView.as_view(), name='result-history'),
    path('results/exam/<int:exam_id>/', ExamResultsView.as_view(), name='exam-results'),
    path('results/exam/<int:exam_id>/statistics/', ExamStatisticsView.as_view(), name='exam-statistics'),
]
