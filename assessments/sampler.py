"""
Assignment sampler.

Draws a per-student question set from an exam's pool, stratified by
difficulty, and freezes each drawn question into an ``AssignedQuestion``
value copy that is stored on the attempt.
"""
import logging
import random
from dataclasses import dataclass
from typing import Optional, Tuple

from django.conf import settings

from exams.models import DIFFICULTY_ORDER, QuestionType
from exams.stratifier import compute_bucket_sizes
from .exceptions import EmptyQuestionPool

logger = logging.getLogger(__name__)

TRUE_FALSE_OPTIONS = ("True", "False")


@dataclass(frozen=True)
class AssignedQuestion:
    question_id: int
    text: str
    question_type: QuestionType
    options: Optional[Tuple[str, ...]]
    correct_answer: str
    marks: int

    @classmethod
    def freeze(cls, question, rng=None, shuffle_options=False):
        """Copy a bank ``Question`` by value, shuffling MCQ options when asked."""
        question_type = QuestionType(question.question_type)
        option_rows = list(question.options.all())
        correct_answer = question.correct_answer or ''

        if question_type == QuestionType.MULTIPLE_CHOICE:
            options = [option.text for option in option_rows]
            flagged = next((option.text for option in option_rows if option.is_correct), None)
            if flagged is not None:
                correct_answer = flagged
            if shuffle_options and rng is not None:
                rng.shuffle(options)
            options = tuple(options)
        elif question_type == QuestionType.TRUE_FALSE:
            options = tuple(option.text for option in option_rows) or TRUE_FALSE_OPTIONS
        else:
            options = None

        return cls(
            question_id=question.pk,
            text=question.text,
            question_type=question_type,
            options=options,
            correct_answer=correct_answer,
            marks=question.marks,
        )

    @classmethod
    def from_dict(cls, data):
        options = data.get('options')
        return cls(
            question_id=int(data['questionId']),
            text=data['questionText'],
            question_type=QuestionType(data['questionType']),
            options=tuple(options) if options is not None else None,
            correct_answer=data.get('correctAnswer', ''),
            marks=int(data['marks']),
        )

    def to_dict(self):
        return {
            'questionId': self.question_id,
            'questionText': self.text,
            'questionType': self.question_type.value,
            'options': list(self.options) if self.options is not None else None,
            'correctAnswer': self.correct_answer,
            'marks': self.marks,
        }

    def to_student_dict(self):
        """What the exam-taking screen may see: everything except the key."""
        data = self.to_dict()
        data.pop('correctAnswer')
        return data


def default_rng(*salt):
    """
    Randomness used when the caller does not inject one.

    With ``CBT_SAMPLER_SEED`` set, draws are reproducible per ``salt`` (e.g.
    student and schedule ids); otherwise the OS entropy source is used.
    """
    seed = getattr(settings, 'CBT_SAMPLER_SEED', None)
    if seed is None:
        return random.SystemRandom()
    return random.Random(":".join(str(part) for part in (seed,) + salt))


def bucket_questions(questions):
    """Group a question pool by difficulty, hardest bucket first."""
    buckets = {difficulty.value: [] for difficulty in DIFFICULTY_ORDER}
    for question in questions:
        buckets.setdefault(question.difficulty, []).append(question)
    return buckets


def assign_questions(exam, questions, rng=None):
    """
    Draw ``exam.total_questions`` questions from ``questions`` without
    replacement and return them as frozen ``AssignedQuestion`` values.

    Raises ``EmptyQuestionPool`` when there is nothing to draw from.
    """
    rng = rng or default_rng(exam.pk)
    buckets = bucket_questions(questions)
    available = sum(len(bucket) for bucket in buckets.values())
    if available == 0:
        logger.error("Exam %s has an empty question pool", exam.pk)
        raise EmptyQuestionPool()

    target = exam.total_questions or available
    sizes = compute_bucket_sizes({key: len(bucket) for key, bucket in buckets.items()}, target)

    drawn = []
    for key, bucket in buckets.items():
        drawn.extend(rng.sample(bucket, sizes[key]))

    if exam.shuffle_questions:
        rng.shuffle(drawn)

    if len(drawn) < target:
        logger.info("Exam %s wants %s questions but the pool only has %s", exam.pk, target, available)

    return [
        AssignedQuestion.freeze(question, rng=rng, shuffle_options=exam.shuffle_options)
        for question in drawn
    ]
