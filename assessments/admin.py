from django.contrib import admin

from .models import ExamSchedule, StudentExam


@admin.register(ExamSchedule)
class ExamScheduleAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'starts_at', 'ends_at', 'access_code', 'status')
    list_filter = ('status', 'exam')
    readonly_fields = ('access_code',)


@admin.register(StudentExam)
class StudentExamAdmin(admin.ModelAdmin):
    list_display = ('student', 'exam', 'status', 'score', 'total_marks', 'percentage', 'started_at', 'completed_at')
    list_filter = ('status', 'exam')
    # Snapshot and result are written by the exam engine only
    readonly_fields = (
        'assigned_questions', 'answers', 'score', 'total_marks', 'percentage',
        'passed', 'result_details', 'status', 'started_at', 'completed_at',
    )
