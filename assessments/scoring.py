"""
Scoring engine.

Marks a submission against an attempt's frozen snapshot. Each question type
has its own equality rule; a question is worth its full marks or nothing.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from exams.models import QuestionType

TRUE_FALSE_TOKENS = ("true", "false")


def _match_option(submitted, correct):
    # Must equal the option text exactly as it was frozen into the snapshot
    return submitted == correct


def _match_true_false(submitted, correct):
    token = submitted.strip().lower()
    return token in TRUE_FALSE_TOKENS and token == correct.strip().lower()


def _match_blank(submitted, correct):
    return submitted.strip().lower() == correct.strip().lower()


ANSWER_RULES = {
    QuestionType.MULTIPLE_CHOICE: _match_option,
    QuestionType.TRUE_FALSE: _match_true_false,
    QuestionType.FILL_BLANK: _match_blank,
}


def is_answer_correct(question, submitted):
    if submitted is None or not str(submitted).strip():
        return False
    return ANSWER_RULES[question.question_type](str(submitted), question.correct_answer)


def compute_percentage(score, total_marks):
    """Whole-number percentage, rounded half up; 0 when nothing was on offer."""
    if not total_marks:
        return 0
    ratio = Decimal(100 * score) / Decimal(total_marks)
    return int(ratio.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class QuestionResult:
    question_id: int
    question_type: QuestionType
    student_answer: Optional[str]
    correct_answer: str
    is_correct: bool
    marks_obtained: int
    max_marks: int

    def to_dict(self):
        return {
            'questionId': self.question_id,
            'questionType': self.question_type.value,
            'studentAnswer': self.student_answer,
            'correctAnswer': self.correct_answer,
            'isCorrect': self.is_correct,
            'marksObtained': self.marks_obtained,
            'maxMarks': self.max_marks,
        }


@dataclass(frozen=True)
class ScoreResult:
    score: int
    total_marks: int
    percentage: int
    passed: bool
    details: Tuple[QuestionResult, ...]

    @property
    def correct_answers(self):
        return sum(1 for detail in self.details if detail.is_correct)

    @property
    def total_questions(self):
        return len(self.details)

    def to_dict(self):
        return {
            'score': self.score,
            'totalMarks': self.total_marks,
            'percentage': self.percentage,
            'passed': self.passed,
            'correctAnswers': self.correct_answers,
            'totalQuestions': self.total_questions,
            'answers': [detail.to_dict() for detail in self.details],
        }


def score_answers(assigned_questions, answers, passing_score):
    """
    Score ``answers`` (question id -> answer string) against the
    ``AssignedQuestion`` snapshot. Ids may be ints or strings; questions with
    no answer score zero.
    """
    details = []
    for question in assigned_questions:
        submitted = answers.get(str(question.question_id), answers.get(question.question_id))
        correct = is_answer_correct(question, submitted)
        details.append(QuestionResult(
            question_id=question.question_id,
            question_type=question.question_type,
            student_answer=submitted,
            correct_answer=question.correct_answer,
            is_correct=correct,
            marks_obtained=question.marks if correct else 0,
            max_marks=question.marks,
        ))

    score = sum(detail.marks_obtained for detail in details)
    total_marks = sum(question.marks for question in assigned_questions)
    percentage = compute_percentage(score, total_marks)
    return ScoreResult(
        score=score,
        total_marks=total_marks,
        percentage=percentage,
        passed=percentage >= (passing_score or 0),
        details=tuple(details),
    )
