class Messages:
    """User-facing message catalogue keyed by language name."""

    DEFAULT_LANG = "English"

    _MESSAGES = {
        "English": {
            "PARSE_EMPTY_RESULT": "Could not parse any questions, please check the document format.",
            "TEXT_EMPTY": "Could not extract text from the uploaded file. Please ensure the file is not corrupted and contains readable text.",
            "UNSUPPORTED_FILE_TYPE": "Unsupported file type '{extension}'. Please upload a PDF, DOC, DOCX or TXT file.",
            "EXTRACTION_FAILED": "Error processing the uploaded file: {error}",
            "FILE_TOO_LARGE": "The uploaded file is {size_mb:.1f} MB; the limit is {limit_mb} MB.",
            "SESSION_FULL": "Session is full.",
            "PARTICIPANT_NOT_FOUND": "You are not part of this session. Please rejoin the session.",
            "SESSION_NOT_FOUND": "Session not found.",
            "QUIZ_NOT_FOUND": "Quiz not found.",
            "SESSION_NOT_STARTABLE_YET": "Session cannot be started yet.",
            "SESSION_ALREADY_ENDED": "Session already ended.",
            "SESSION_ALREADY_STARTED": "Session has already started.",
            "SESSION_NOT_IN_PROGRESS": "Session is not in progress.",
            "SESSION_NOT_CANCELLABLE": "Only scheduled or waiting sessions can be cancelled.",
            "LOBBY_NOT_OPENABLE": "The lobby can only be opened for a scheduled session.",
            "PARTICIPANT_ALREADY_COMPLETED": "You have already completed this session.",
            "INVALID_QUESTION_INDEX": "Question {index} does not exist in this quiz.",
            "INVALID_PROGRESS_UPDATE": "Invalid progress update for: {fields}.",
            "SESSION_CODE_UNAVAILABLE": "Could not allocate a unique session code, please try again.",
        },
        "Spanish": {
            "PARSE_EMPTY_RESULT": "No se pudo analizar ninguna pregunta, revise el formato del documento.",
            "SESSION_FULL": "La sesión está llena.",
            "PARTICIPANT_NOT_FOUND": "No formas parte de esta sesión. Vuelve a unirte.",
            "SESSION_ALREADY_ENDED": "La sesión ya terminó.",
        },
        "French": {
            "PARSE_EMPTY_RESULT": "Impossible d'analyser les questions, veuillez vérifier le format du document.",
            "SESSION_FULL": "La session est complète.",
            "PARTICIPANT_NOT_FOUND": "Vous ne faites pas partie de cette session. Veuillez la rejoindre à nouveau.",
            "SESSION_ALREADY_ENDED": "La session est déjà terminée.",
        },
    }

    @classmethod
    def get(cls, key: str, lang: str = DEFAULT_LANG) -> str:
        catalogue = cls._MESSAGES.get(lang) or {}
        if key in catalogue:
            return catalogue[key]
        return cls._MESSAGES[cls.DEFAULT_LANG].get(key, key)
