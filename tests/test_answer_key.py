from unittest.mock import MagicMock

import pytest

from schemas.quiz import AnswerKeyEntry, Question
from utils.parser import merge_questions_with_answers, parse_answer_key, parse_questions


def pairs(entries):
    return [(e.question_number, e.answer_letter) for e in entries]


@pytest.mark.parametrize("line, expected", [
    ("1. B", [(1, "B")]),
    ("2) c", [(2, "C")]),
    ("3: D", [(3, "D")]),
    ("4 - A", [(4, "A")]),
    ("5 b", [(5, "B")]),
])
def test_positional_formats(line, expected):
    assert pairs(parse_answer_key(line)) == expected


def test_quoted_answers_on_one_line():
    text = '"1. B", "2. C", "3. A"'
    assert pairs(parse_answer_key(text)) == [(1, "B"), (2, "C"), (3, "A")]


def test_curly_quoted_answers():
    assert pairs(parse_answer_key("“1. D” “2. a”")) == [(1, "D"), (2, "A")]


def test_combined_unquoted_pairs():
    assert pairs(parse_answer_key("1. A 2. B 3. C")) == [(1, "A"), (2, "B"), (3, "C")]


def test_non_answer_lines_are_ignored():
    text = "Answer Key\n1. Apple\n\n2. C\nGood luck!"
    assert pairs(parse_answer_key(text)) == [(2, "C")]


def test_letters_are_uppercased():
    entry = AnswerKeyEntry(question_number=1, answer_letter="d")
    assert entry.answer_letter == "D"
    assert entry.option_index == 3


def test_merge_sets_correct_answer_from_letter():
    questions = [Question(options=["X", "Y", "Z", "W"])]
    merged = merge_questions_with_answers(questions, [AnswerKeyEntry(question_number=1, answer_letter="B")])

    assert merged[0].correct_answer == "Y"
    assert questions[0].correct_answer == ""


def test_merge_defaults_when_answer_missing():
    questions = [Question(options=["X", "Y", "Z", "W"]), Question(options=[])]
    merged = merge_questions_with_answers(questions, [])

    assert merged[0].correct_answer == "X"
    assert merged[1].correct_answer == ""


def test_merge_out_of_range_letter_warns_and_defaults():
    log = MagicMock()
    questions = [Question(options=["X", "Y"])]
    merged = merge_questions_with_answers(questions, [AnswerKeyEntry(question_number=1, answer_letter="D")], log=log)

    assert merged[0].correct_answer == "X"
    log.warning.assert_called_once()


def test_merge_ignores_answers_beyond_question_count():
    questions = [Question(options=["X", "Y", "Z", "W"])]
    answers = [AnswerKeyEntry(question_number=1, answer_letter="C"), AnswerKeyEntry(question_number=7, answer_letter="A")]

    merged = merge_questions_with_answers(questions, answers)
    assert [q.correct_answer for q in merged] == ["Z"]


def test_first_answer_for_a_number_wins():
    questions = [Question(options=["X", "Y", "Z", "W"])]
    answers = parse_answer_key("1. B\n1. D")

    assert merge_questions_with_answers(questions, answers)[0].correct_answer == "Y"


def test_round_trip_with_answer_key():
    questions = parse_questions("1. What is 2+2?\na) 3 b) 4 c) 5 d) 6\n")
    merged = merge_questions_with_answers(questions, parse_answer_key("1. B"))

    assert len(merged) == 1
    assert merged[0].options == ["3", "4", "5", "6"]
    assert merged[0].correct_answer == "4"
