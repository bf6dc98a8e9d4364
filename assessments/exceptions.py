"""Typed failures of the exam engine, rendered by DRF's exception handler."""
from rest_framework import status
from rest_framework.exceptions import APIException


class EmptyQuestionPool(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "This exam has no questions yet and cannot be started."
    default_code = 'empty_question_pool'


class AlreadySubmitted(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Exam already submitted."
    default_code = 'already_submitted'


class InvalidAnswerShape(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Answers must map question ids to answer strings."
    default_code = 'invalid_answer_shape'


class AccessDenied(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "You cannot start this exam."
    default_code = 'access_denied'
