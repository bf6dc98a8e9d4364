# exams/serializers.py
from rest_framework import serializers
from .models import Exam

class ExamSerializer(serializers.ModelSerializer):
    category = serializers.CharField(source='category.name', read_only=True, default=None)
    durationMinutes = serializers.IntegerField(source='duration_minutes')
    totalQuestions = serializers.IntegerField(source='total_questions')
    passingScore = serializers.IntegerField(source='passing_score')
    shuffleQuestions = serializers.BooleanField(source='shuffle_questions')
    shuffleOptions = serializers.BooleanField(source='shuffle_options')
    showResultImmediately = serializers.BooleanField(source='show_result_immediately')
    isPublished = serializers.BooleanField(source='is_published')

    # Read-only counts
    poolSize = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'description', 'category', 'durationMinutes',
            'totalQuestions', 'passingScore', 'shuffleQuestions', 'shuffleOptions',
            'showResultImmediately', 'isPublished', 'poolSize',
        ]
