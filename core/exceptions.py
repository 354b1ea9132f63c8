class PracticeError(Exception):
    """Base error for the practice engine.

    `code` is a stable identifier surfaced to API clients, `status_code` the
    HTTP status the API layer maps it to.
    """
    code = "practice_error"
    status_code = 400

    def __init__(self, message: str = None, **context):
        self.message = message or self.__doc__.strip().splitlines()[0]
        self.context = context
        super().__init__(self.message)


class InvalidScopeForMode(PracticeError):
    """Scope ids do not match the requested session mode."""
    code = "invalid_scope_for_mode"
    status_code = 400


class NoQuestionsAvailable(PracticeError):
    """No questions available for the specified criteria."""
    code = "no_questions_available"
    status_code = 404


class SessionNotFound(PracticeError):
    """Session not found."""
    code = "session_not_found"
    status_code = 404


class SessionAlreadyCompleted(PracticeError):
    """Session already completed."""
    code = "session_already_completed"
    status_code = 409


class UnknownQuestionInSession(PracticeError):
    """Question not found in session."""
    code = "unknown_question_in_session"
    status_code = 400


class EmptyResponseSet(PracticeError):
    """At least one response is required."""
    code = "empty_response_set"
    status_code = 400


class ProgressRecordMissing(PracticeError):
    """Student progress not found."""
    code = "progress_record_missing"
    status_code = 500


class BranchNotFound(PracticeError):
    """Branch not found."""
    code = "branch_not_found"
    status_code = 404


class SubjectNotFound(PracticeError):
    """Subject not found."""
    code = "subject_not_found"
    status_code = 404
