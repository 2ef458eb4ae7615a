from app.core.errors import NotFoundError, ValidationError


class EmailInvalidError(ValidationError):
    code = "E_EMAIL_INVALID"
    default_message = "Invalid email address"


class QuestionNotFoundError(NotFoundError):
    code = "E_QUESTION_NOT_FOUND"
    default_message = "Question not found"


class QuestionInvalidError(ValidationError):
    code = "E_QUESTION_INVALID"
    default_message = "Invalid question"


class QuestionReorderError(ValidationError):
    code = "E_QUESTION_REORDER"
    default_message = "Cannot move question"


class SurveySubmissionInvalidError(ValidationError):
    code = "E_SURVEY_SUBMISSION_INVALID"
    default_message = "Invalid survey submission"
