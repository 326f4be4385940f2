import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from core.logger import logger
from schemas.quiz import OPTION_COUNT, AnswerKeyEntry, Language, Question

# A numbered line that carries question text ("1. What is ...", "2) ...").
QUESTION_LINE = re.compile(r"^(\d+)[.)]\s*(.+)")
# Any numbered line, text optional; used by the flexible strategy.
NUMBERED_LINE = re.compile(r"^(\d+)[.)]\s*(.*)$")
UNMARKED_NUMERIC = re.compile(r"^\d+$")

LATIN_LETTERS = ("a", "b", "c", "d")
KANNADA_LETTERS = ("ಅ", "ಆ", "ಇ", "ಈ")
DIGIT_MARKERS = ("1", "2", "3", "4")


@dataclass(frozen=True)
class LanguagePatterns:
    """Option-marker regexes for one document language."""
    option_letters: Tuple[str, ...]
    fallback_letters: Tuple[str, ...] = ()

    @property
    def marker_class(self) -> str:
        # Native letters first, then the fallbacks documents mix in
        return "[" + "".join(re.escape(c) for c in self.option_letters + self.fallback_letters) + "]"

    def _compile(self, pattern: str) -> "re.Pattern":
        return re.compile(pattern.format(m=self.marker_class), re.IGNORECASE)

    @property
    def option_marker(self) -> "re.Pattern":
        # Markers counted inside a question line: "a)" ... "d)"
        return self._compile(r"(?:{m})\)")

    @property
    def option_split(self) -> "re.Pattern":
        # One capture group so re.split yields [question, a, opt, b, opt, ...]
        return self._compile(r"\s+({m})[.)]\s*")

    @property
    def inline_option(self) -> "re.Pattern":
        return self._compile(r"(?<!\w)({m})[.)]\s*(.+?)(?=\s+(?:{m})[.)]|$)")

    @property
    def first_inline_marker(self) -> "re.Pattern":
        return self._compile(r"(?<!\w)(?:{m})[.)]")

    @property
    def option_line(self) -> "re.Pattern":
        return self._compile(r"^({m})[.)]\s*(.+)")

    @property
    def flexible_option_line(self) -> "re.Pattern":
        return self._compile(r"^({m}|[1-4])[.)]\s*(.+)")

    @property
    def embedded_marker(self) -> "re.Pattern":
        return self._compile(r"(?<!\w)(?:{m})\)")

    @property
    def embedded_split(self) -> "re.Pattern":
        return self._compile(r"(?=(?<!\w)(?:{m})\))")

    @property
    def leading_marker(self) -> "re.Pattern":
        return self._compile(r"^(?:{m})\)\s*")


_LATIN = LanguagePatterns(option_letters=LATIN_LETTERS)

LANGUAGE_PATTERNS: Dict[Language, LanguagePatterns] = {
    Language.ENGLISH: _LATIN,
    Language.SPANISH: _LATIN,
    Language.FRENCH: _LATIN,
    Language.KANNADA: LanguagePatterns(
        option_letters=KANNADA_LETTERS,
        fallback_letters=LATIN_LETTERS + DIGIT_MARKERS,
    ),
}


def get_language_patterns(language) -> LanguagePatterns:
    """Look up marker patterns; unknown languages use the English table."""
    try:
        return LANGUAGE_PATTERNS[Language(language)]
    except ValueError:
        return LANGUAGE_PATTERNS[Language.ENGLISH]


def placeholder_option(position: int) -> str:
    return f"Option {chr(ord('A') + position)}"


def pad_options(options: List[str]) -> List[str]:
    """Pad with ``Option A``..``Option D`` by position and truncate to four."""
    padded = list(options)
    while len(padded) < OPTION_COUNT:
        padded.append(placeholder_option(len(padded)))
    return padded[:OPTION_COUNT]


def split_options_from_text(option_text: str, patterns: LanguagePatterns = _LATIN) -> List[str]:
    """Split ``"3 b) 4 c) 5"`` into ``["3", "4", "5"]``."""
    parts = patterns.embedded_split.split(option_text)
    cleaned = [patterns.leading_marker.sub("", part).strip() for part in parts]
    return [part for part in cleaned if part]


def normalize_options(options: Sequence[str], patterns: LanguagePatterns = _LATIN) -> List[str]:
    normalized: List[str] = []
    for option in options:
        if len(patterns.embedded_marker.findall(option)) > 1:
            normalized.extend(split_options_from_text(option, patterns))
        else:
            normalized.append(option)
    normalized = [option.strip() for option in normalized if option and option.strip()]
    return pad_options(normalized)


def ensure_four_options(question: Question, language=Language.ENGLISH) -> Question:
    """Return a copy of ``question`` with exactly four options.

    Options that still hold several inline markers are split first, blank
    options are dropped, then the list is padded or truncated.
    """
    patterns = get_language_patterns(language)
    return question.model_copy(update={"options": normalize_options(question.options, patterns)})


def _clean_lines(text: str) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


class ParsingStrategy:
    """One way of turning document text into questions.

    ``parse`` returns ``None`` when it found nothing so the driver can move on
    to the next strategy.
    """
    name = "base"

    def parse(self, lines: List[str], patterns: LanguagePatterns, log) -> Optional[List[Question]]:
        raise NotImplementedError


class StrictLineStrategy(ParsingStrategy):
    """Numbered questions with ``a)``-style options inline or on the next lines."""
    name = "strict"

    def parse(self, lines, patterns, log):
        questions = []
        for index, line in enumerate(lines):
            match = QUESTION_LINE.match(line)
            if not match:
                continue

            body = match.group(2).strip()
            markers = patterns.option_marker.findall(body)
            if len(markers) >= OPTION_COUNT:
                question = self._parse_inline(body, patterns, log)
            else:
                question = self._parse_multiline(body, lines[index + 1:], patterns)

            question.options = normalize_options(question.options, patterns)
            log.debug("Parsed question", strategy=self.name, number=match.group(1),
                      text=question.text[:50], options=question.options)
            questions.append(question)

        return questions or None

    def _parse_inline(self, body: str, patterns: LanguagePatterns, log) -> Question:
        parts = patterns.option_split.split(body)
        # [question, a, opt1, b, opt2, c, opt3, d, opt4, ...]
        if len(parts) >= 2 * OPTION_COUNT + 1:
            return Question(
                text=parts[0].strip(),
                options=[parts[i].strip() for i in range(2, 2 * OPTION_COUNT + 1, 2)],
            )

        log.debug("Inline split failed, extracting options one by one", text=body[:100])
        first_marker = patterns.first_inline_marker.search(body)
        text = body[:first_marker.start()].strip() if first_marker else body
        options = [m.group(2).strip() for m in patterns.inline_option.finditer(body)]
        return Question(text=text, options=options)

    def _parse_multiline(self, body: str, following: List[str], patterns: LanguagePatterns) -> Question:
        question = Question(text=body)
        for line in following:
            if QUESTION_LINE.match(line):
                break

            option = patterns.option_line.match(line)
            if option:
                question.options.append(option.group(2).strip())
            elif not question.options:
                question.text += " " + line
            else:
                # Wrapped option text
                question.options[-1] += " " + line
        return question


class FlexibleLineStrategy(ParsingStrategy):
    """Permissive fallback: numbered lines followed by up to four option lines."""
    name = "flexible"

    def parse(self, lines, patterns, log):
        questions = []
        current = None
        position = 0

        while position < len(lines):
            line = lines[position]
            position += 1

            numbered = NUMBERED_LINE.match(line)
            if numbered:
                self._flush(current, questions, log)

                text = numbered.group(2).strip()
                if not text and position < len(lines) and not patterns.flexible_option_line.match(lines[position]):
                    text = lines[position]
                    position += 1

                current = Question(text=text or f"Question {numbered.group(1)}")
                continue

            if current is None or len(current.options) >= OPTION_COUNT:
                continue

            option = patterns.flexible_option_line.match(line)
            if option:
                current.options.append(option.group(2).strip())
            elif self._looks_like_option(line):
                current.options.append(line)

        self._flush(current, questions, log)
        return questions or None

    @staticmethod
    def _looks_like_option(line: str) -> bool:
        # Heuristic for unmarked options: skip short tokens, bare numbers and fill-in blanks
        return len(line) > 3 and not UNMARKED_NUMERIC.match(line) and "_" not in line

    def _flush(self, question: Optional[Question], questions: List[Question], log):
        if question is None or len(question.options) < 2:
            return
        question.options = pad_options(question.options)
        log.debug("Parsed question", strategy=self.name, text=question.text[:50], options=question.options)
        questions.append(question)


STRATEGIES: Tuple[ParsingStrategy, ...] = (StrictLineStrategy(), FlexibleLineStrategy())


def parse_questions(text: str, language=Language.ENGLISH, log=None,
                    strategies: Sequence[ParsingStrategy] = STRATEGIES) -> List[Question]:
    """Extract questions from plain document text.

    Strategies are tried in order and the first non-empty result wins. Never
    raises for malformed content; an empty list means nothing was recognized.
    """
    log = log or logger
    patterns = get_language_patterns(language)
    lines = _clean_lines(text)
    log.info("Parsing questions", language=str(getattr(language, "value", language)), lines=len(lines))

    for strategy in strategies:
        questions = strategy.parse(lines, patterns, log)
        if questions:
            log.info("Questions parsed", strategy=strategy.name, count=len(questions))
            return questions
        log.info("Strategy found no questions", strategy=strategy.name)

    return []


ANSWER_LETTER = r"([a-d])(?![a-z])"
QUOTED_ANSWER = re.compile(r"[\"“”](\d+)\.\s*" + ANSWER_LETTER + r"[\"“”]", re.IGNORECASE)
COMBINED_ANSWER = re.compile(r"(?<!\d)(\d+)[.)]\s*" + ANSWER_LETTER, re.IGNORECASE)
POSITIONAL_ANSWERS = tuple(
    re.compile(pattern + ANSWER_LETTER, re.IGNORECASE)
    for pattern in (
        r"^(\d+)\.\s*",    # 1. B
        r"^(\d+)\)\s*",    # 1) B
        r"^(\d+)\s*:\s*",  # 1: B
        r"^(\d+)\s*-\s*",  # 1 - B
        r"^(\d+)\s+",      # 1 B
    )
)


def _match_answer_line(line: str) -> List[Tuple[str, str]]:
    quoted = QUOTED_ANSWER.findall(line)
    if quoted:
        return quoted

    combined = COMBINED_ANSWER.findall(line)
    if len(combined) > 1:
        return combined

    for pattern in POSITIONAL_ANSWERS:
        match = pattern.match(line)
        if match:
            return [match.groups()]
    return []


def parse_answer_key(text: str, log=None) -> List[AnswerKeyEntry]:
    """Parse answer-key text into ``(question number, letter)`` entries."""
    log = log or logger
    answers = []
    for line in _clean_lines(text):
        for number, letter in _match_answer_line(line):
            answers.append(AnswerKeyEntry(question_number=int(number), answer_letter=letter))

    log.info("Answer key parsed", count=len(answers))
    return answers


def merge_questions_with_answers(questions: Sequence[Question], answers: Sequence[AnswerKeyEntry],
                                 log=None) -> List[Question]:
    """Set ``correct_answer`` from the answer key by 1-based question position.

    Missing or out-of-range answers never raise: the question keeps its
    current answer, or defaults to its first option.
    """
    log = log or logger
    by_number: Dict[int, AnswerKeyEntry] = {}
    for answer in answers:
        by_number.setdefault(answer.question_number, answer)

    merged = []
    for number, question in enumerate(questions, 1):
        question = question.model_copy(deep=True)
        answer = by_number.get(number)

        if answer and question.options:
            if 0 <= answer.option_index < len(question.options):
                question.correct_answer = question.options[answer.option_index]
            else:
                log.warning("Answer letter out of range", question=number,
                            letter=answer.answer_letter, options=len(question.options))

        if not question.correct_answer:
            question.correct_answer = question.options[0] if question.options else ""
        merged.append(question)

    return merged


def finalize_questions(questions: Sequence[Question]) -> List[Question]:
    """Guarantee text, four options and a correct answer taken from the options."""
    finalized = []
    for number, question in enumerate(questions, 1):
        options = pad_options(question.options)
        correct = question.correct_answer if question.correct_answer in options else options[0]
        finalized.append(Question(
            text=question.text or f"Question {number}",
            options=options,
            correct_answer=correct,
            points=question.points,
            type=question.type,
        ))
    return finalized
