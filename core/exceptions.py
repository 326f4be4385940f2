from constants.messages import Messages


class QuizDeskError(Exception):
    """Base class for recoverable, caller-visible errors."""
    code = "error"
    message_key = None

    def __init__(self, message: str = None, **context):
        if message is None and self.message_key:
            message = Messages.get(self.message_key).format(**context)
        super().__init__(message or self.code)
        self.context = context


# Document ingestion

class UnsupportedFileType(QuizDeskError):
    code = "unsupported_file_type"
    message_key = "UNSUPPORTED_FILE_TYPE"


class ExtractionFailed(QuizDeskError):
    code = "extraction_failed"
    message_key = "EXTRACTION_FAILED"


class ParseEmptyResult(QuizDeskError):
    code = "parse_empty_result"
    message_key = "PARSE_EMPTY_RESULT"


class QuizNotFound(QuizDeskError):
    code = "quiz_not_found"
    message_key = "QUIZ_NOT_FOUND"


# Competitive sessions

class SessionNotFound(QuizDeskError):
    code = "session_not_found"
    message_key = "SESSION_NOT_FOUND"


class SessionFull(QuizDeskError):
    code = "session_full"
    message_key = "SESSION_FULL"


class ParticipantNotFound(QuizDeskError):
    code = "participant_not_found"
    message_key = "PARTICIPANT_NOT_FOUND"


class InvalidStateTransition(QuizDeskError):
    code = "invalid_state_transition"
    message_key = "SESSION_NOT_IN_PROGRESS"


class InvalidQuestionIndex(QuizDeskError):
    code = "invalid_question_index"
    message_key = "INVALID_QUESTION_INDEX"


class InvalidProgressUpdate(QuizDeskError):
    code = "invalid_progress_update"
    message_key = "INVALID_PROGRESS_UPDATE"


class SessionCodeUnavailable(QuizDeskError):
    code = "session_code_unavailable"
    message_key = "SESSION_CODE_UNAVAILABLE"
