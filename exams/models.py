# exams/models.py
from django.conf import settings
from django.db import models


class ExamCategory(models.Model):
    school = models.ForeignKey('users.School', on_delete=models.CASCADE, related_name='exam_categories')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)

    class Meta:
        verbose_name_plural = 'exam categories'
        unique_together = ('school', 'name')

    def __str__(self):
        return self.name


class Exam(models.Model):
    school = models.ForeignKey('users.School', on_delete=models.CASCADE, related_name='exams')
    tutor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='authored_exams')
    title = models.CharField(max_length=255)
    category = models.ForeignKey(ExamCategory, on_delete=models.SET_NULL, null=True, blank=True, related_name='exams')
    description = models.TextField(blank=True)

    duration_minutes = models.PositiveIntegerField()
    # Target sample size; 0 serves the whole question pool
    total_questions = models.PositiveIntegerField(default=0)
    passing_score = models.PositiveIntegerField(null=True, blank=True, help_text="Pass mark percentage")
    shuffle_questions = models.BooleanField(default=True)
    shuffle_options = models.BooleanField(default=True)
    show_result_immediately = models.BooleanField(default=True)

    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        if self.passing_score is None:
            from cores.models import PlatformSetting
            self.passing_score = PlatformSetting.load().default_pass_mark
        super().save(*args, **kwargs)

    def __str__(self):
        return self.title


class QuestionType(models.TextChoices):
    MULTIPLE_CHOICE = "multiple_choice", "Multiple Choice"
    TRUE_FALSE = "true_false", "True / False"
    FILL_BLANK = "fill_blank", "Fill in the Blank"


class Difficulty(models.TextChoices):
    HARD = "hard", "Hard"
    MEDIUM = "medium", "Medium"
    EASY = "easy", "Easy"


# Order in which difficulty buckets are laid out when questions are not shuffled
DIFFICULTY_ORDER = (Difficulty.HARD, Difficulty.MEDIUM, Difficulty.EASY)


class QuestionQuerySet(models.QuerySet):
    def for_exam(self, exam_id):
        """The exam's question pool, options prefetched in presentation order."""
        return self.filter(exam_id=exam_id).prefetch_related('options').order_by('id')


class Question(models.Model):
    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.CASCADE)

    text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QuestionType.choices, default=QuestionType.MULTIPLE_CHOICE)
    difficulty = models.CharField(max_length=20, choices=Difficulty.choices, default=Difficulty.MEDIUM)
    marks = models.PositiveIntegerField(default=1)

    # For multiple choice the option flagged is_correct wins over this field
    correct_answer = models.TextField(blank=True)

    objects = QuestionQuerySet.as_manager()

    def __str__(self):
        return f"{self.text[:50]}..."


class Option(models.Model):
    question = models.ForeignKey(Question, related_name='options', on_delete=models.CASCADE)
    text = models.CharField(max_length=255)
    is_correct = models.BooleanField(default=False)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self):
        return self.text
