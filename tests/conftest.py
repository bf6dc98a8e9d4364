from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from assessments.models import ExamSchedule
from exams.models import Difficulty, Exam, Option, Question, QuestionType
from users.models import School, User


@pytest.fixture(autouse=True)
def clear_platform_settings_cache():
    # PlatformSetting is cached; don't let one test's settings leak into the next
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def school(db):
    return School.objects.create(name="Greenfield College", email="admin@greenfield.test")


@pytest.fixture
def other_school(db):
    return School.objects.create(name="Hillside Academy", email="admin@hillside.test")


def make_user(school, role, email, **extra):
    return User.objects.create_user(
        username=email,
        email=email,
        password="pass1234",
        first_name=extra.pop('first_name', "Test"),
        last_name=extra.pop('last_name', role.title()),
        role=role,
        school=school,
        **extra,
    )


@pytest.fixture
def tutor(school):
    return make_user(school, User.Role.TUTOR, "tutor@greenfield.test", first_name="Ada", last_name="Obi")


@pytest.fixture
def student(school):
    return make_user(school, User.Role.STUDENT, "student@greenfield.test", registration_number="GF-001")


@pytest.fixture
def other_tutor(other_school):
    return make_user(other_school, User.Role.TUTOR, "tutor@hillside.test")


def add_question(exam, difficulty, marks, question_type=QuestionType.MULTIPLE_CHOICE, text=None, correct="B", options=None):
    question = Question.objects.create(
        exam=exam,
        text=text or f"{difficulty} question {exam.questions.count() + 1}",
        question_type=question_type,
        difficulty=difficulty,
        marks=marks,
        correct_answer=correct,
    )
    if question_type == QuestionType.MULTIPLE_CHOICE:
        for position, option_text in enumerate(options or ["A", "B", "C", "D"]):
            Option.objects.create(
                question=question, text=option_text, is_correct=(option_text == correct), position=position,
            )
    return question


@pytest.fixture
def exam(school, tutor):
    """10 seats over a pool of 5 hard (5 marks), 5 medium (3 marks), 5 easy (2 marks)."""
    exam = Exam.objects.create(
        school=school,
        tutor=tutor,
        title="Physics Mock",
        description="Mechanics and waves",
        duration_minutes=60,
        total_questions=10,
        passing_score=50,
        shuffle_questions=True,
        shuffle_options=True,
        is_published=True,
    )
    for difficulty, marks in ((Difficulty.HARD, 5), (Difficulty.MEDIUM, 3), (Difficulty.EASY, 2)):
        for _ in range(5):
            add_question(exam, difficulty, marks)
    return exam


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def schedule(exam, student, tutor, now):
    return ExamSchedule.objects.create(
        exam=exam,
        student=student,
        starts_at=now - timedelta(minutes=5),
        ends_at=now + timedelta(hours=2),
        created_by=tutor,
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def student_client(api_client, student):
    api_client.force_authenticate(user=student)
    return api_client


@pytest.fixture
def tutor_client(tutor):
    client = APIClient()
    client.force_authenticate(user=tutor)
    return client


@pytest.fixture
def question_factory():
    return add_question
