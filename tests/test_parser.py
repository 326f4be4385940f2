import re
from unittest.mock import MagicMock

import pytest

from schemas.quiz import Language, Question
from utils.parser import (
    DIGIT_MARKERS,
    KANNADA_LETTERS,
    LATIN_LETTERS,
    LanguagePatterns,
    FlexibleLineStrategy,
    StrictLineStrategy,
    ensure_four_options,
    finalize_questions,
    get_language_patterns,
    parse_questions,
)


def test_round_trip_inline_options_on_one_line():
    questions = parse_questions("1. What is 2+2?\na) 3 b) 4 c) 5 d) 6\n")

    assert len(questions) == 1
    assert questions[0].text == "What is 2+2?"
    assert questions[0].options == ["3", "4", "5", "6"]


def test_inline_options_on_question_line():
    questions = parse_questions("1. Capital of France? a) Paris b) London c) Berlin d) Rome")

    assert questions[0].text == "Capital of France?"
    assert questions[0].options == ["Paris", "London", "Berlin", "Rome"]


def test_inline_options_with_parenthesis_markers_only():
    questions = parse_questions("1) Pick one a) red b) green c) blue d) black")

    assert questions[0].text == "Pick one"
    assert questions[0].options == ["red", "green", "blue", "black"]


def test_multiline_options_and_question_continuation(multiline_text):
    questions = parse_questions(multiline_text)

    assert len(questions) == 2
    assert questions[0].options == ["Earth", "Mars", "Jupiter", "Saturn"]
    assert questions[1].text == "What is H2O commonly called?"
    assert questions[1].options == ["Water", "Salt", "Sugar", "Option D"]


def test_wrapped_option_text_is_joined():
    text = "1. Define photosynthesis\na) The process plants use\nto make food\nb) Breathing\nc) Eating\nd) Sleeping"
    questions = parse_questions(text)

    assert questions[0].options[0] == "The process plants use to make food"


@pytest.mark.parametrize("option_lines", [
    [],
    ["a) one"],
    ["a) one", "b) two", "c) three"],
    ["a) one", "b) two", "c) three", "d) four", "a) five"],
    ["a) %d" % i for i in range(10)],
])
def test_options_always_normalized_to_four(option_lines):
    text = "\n".join(["1. Sample question"] + option_lines)
    questions = parse_questions(text)

    assert len(questions) == 1
    assert len(questions[0].options) == 4


def test_five_inline_markers_keep_first_four():
    questions = parse_questions("1. Q a) one b) two c) three d) four a) five")
    assert questions[0].options == ["one", "two", "three", "four"]


def test_flexible_fallback_activates_without_markers(flexible_text):
    lines = [line for line in flexible_text.splitlines()]
    assert StrictLineStrategy().parse(lines, get_language_patterns(Language.ENGLISH), MagicMock()) is None

    questions = parse_questions(flexible_text)

    assert len(questions) == 2
    assert questions[0].text == "Which ocean is the largest?"
    assert questions[0].options == ["Pacific Ocean", "Atlantic Ocean", "Indian Ocean", "Arctic Ocean"]
    assert all(len(q.options) == 4 for q in questions)


def test_flexible_skips_numbers_blanks_and_short_lines():
    text = "\n".join(["1.", "Fill in the answer", "42", "____ blank", "ok", "Real option one", "Real option two"])
    questions = parse_questions(text)

    assert len(questions) == 1
    assert questions[0].options == ["Real option one", "Real option two", "Option C", "Option D"]


def test_flexible_drops_questions_with_fewer_than_two_options():
    text = "\n".join(["1.", "Lonely question", "Only option here", "2.", "Next question", "First choice", "Second choice"])
    questions = FlexibleLineStrategy().parse(text.splitlines(), get_language_patterns(Language.ENGLISH), MagicMock())

    assert [q.text for q in questions] == ["Next question"]


def test_kannada_markers():
    text = "\n".join(["1. ಭಾರತದ ರಾಜಧಾನಿ ಯಾವುದು?", "ಅ) ದೆಹಲಿ", "ಆ) ಮುಂಬೈ", "ಇ) ಚೆನ್ನೈ", "ಈ) ಕೋಲ್ಕತ್ತಾ"])
    questions = parse_questions(text, Language.KANNADA)

    assert len(questions) == 1
    assert questions[0].options == ["ದೆಹಲಿ", "ಮುಂಬೈ", "ಚೆನ್ನೈ", "ಕೋಲ್ಕತ್ತಾ"]


def test_kannada_accepts_latin_fallback_markers():
    text = "1. Which is a fruit?\na) Apple\nb) Brick\nc) Chair\nd) Stone"
    questions = parse_questions(text, Language.KANNADA)

    assert questions[0].options == ["Apple", "Brick", "Chair", "Stone"]


def test_marker_class_built_from_option_letters():
    english = get_language_patterns(Language.ENGLISH)
    kannada = get_language_patterns(Language.KANNADA)

    assert english.marker_class == "[abcd]"
    for letter in KANNADA_LETTERS + LATIN_LETTERS + DIGIT_MARKERS:
        assert re.fullmatch(kannada.marker_class, letter)
    assert not re.fullmatch(english.marker_class, "1")
    assert not re.fullmatch(kannada.marker_class, "e")


def test_custom_letters_drive_marker_class():
    patterns = LanguagePatterns(option_letters=("p", "q"), fallback_letters=("9",))

    assert patterns.marker_class == "[pq9]"


def test_unknown_language_uses_english_patterns():
    assert get_language_patterns("Klingon") is get_language_patterns(Language.ENGLISH)


@pytest.mark.parametrize("text", ["", "   \n\n", "Just some prose without numbering.\nMore prose here."])
def test_unparseable_text_returns_empty_list(text):
    assert parse_questions(text) == []


def test_logger_is_injectable():
    log = MagicMock()
    parse_questions("1. Q a) w b) x c) y d) z", log=log)

    log.info.assert_any_call("Questions parsed", strategy="strict", count=1)


def test_ensure_four_options_splits_embedded_markers():
    question = Question(text="Q", options=["3 b) 4 c) 5 d) 6"])
    fixed = ensure_four_options(question)

    assert fixed.options == ["3", "4", "5", "6"]
    assert question.options == ["3 b) 4 c) 5 d) 6"]


def test_ensure_four_options_drops_blanks_and_pads():
    fixed = ensure_four_options(Question(text="Q", options=["yes", " ", "no"]))
    assert fixed.options == ["yes", "no", "Option C", "Option D"]


def test_finalize_fills_text_and_correct_answer():
    questions = finalize_questions([
        Question(text="", options=["A1", "B1"], correct_answer="missing"),
        Question(text="Kept", options=["x", "y", "z", "w"], correct_answer="z"),
    ])

    assert questions[0].text == "Question 1"
    assert questions[0].options == ["A1", "B1", "Option C", "Option D"]
    assert questions[0].correct_answer == "A1"
    assert questions[1].correct_answer == "z"
