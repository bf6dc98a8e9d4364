from django.contrib import admin

from .models import Exam, Question, Option, ExamCategory


class OptionInline(admin.TabularInline):
    model = Option
    extra = 4


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('text', 'exam', 'question_type', 'difficulty', 'marks')
    list_filter = ('question_type', 'difficulty', 'exam')
    inlines = [OptionInline]


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'school', 'total_questions', 'passing_score', 'is_published')
    list_filter = ('school', 'is_published')


admin.site.register(ExamCategory)
