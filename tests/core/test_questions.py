"""Tests for the question bank."""

import random

import pytest

from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.questions import (
    delete_question,
    get_question_by_id,
    list_questions,
    select_random_questions,
    update_question,
)


class TestCreateQuestion:
    def test_defaults(self, make_question):
        question = make_question()
        assert question["points_value"] == 1.0
        assert question["time_limit_seconds"] == 60
        assert question["is_active"] is True
        assert question["options"] == ["2", "3", "4", "5"]

    def test_multiple_choice_answer_must_be_an_option(self, make_question):
        with pytest.raises(RuleViolationError, match="one of the options"):
            make_question(correct_answer="7")

    def test_multiple_choice_needs_two_options(self, make_question):
        with pytest.raises(RuleViolationError, match="at least 2 options"):
            make_question(options=["4"])

    def test_true_false_normalized(self, make_question):
        question = make_question(question_type="true_false", options=None, correct_answer=" TRUE ")
        assert question["correct_answer"] == "true"

    def test_true_false_invalid_answer(self, make_question):
        with pytest.raises(RuleViolationError, match="true"):
            make_question(question_type="true_false", options=None, correct_answer="maybe")

    @pytest.mark.parametrize(
        "field,value",
        [("question_type", "matching"), ("difficulty", "extreme"), ("stage", "Semifinal")],
    )
    def test_unknown_enums(self, make_question, field, value):
        with pytest.raises(RuleViolationError):
            make_question(**{field: value})


class TestListAndUpdate:
    def test_filters_and_pagination(self, make_question):
        make_question(difficulty="easy")
        make_question(difficulty="hard")
        make_question(subject="Physics")

        rows, total = list_questions({"subject": "Math"}, page=1, limit=1)
        assert total == 2
        assert len(rows) == 1
        rows, total = list_questions({"difficulty": "hard"}, page=1, limit=10)
        assert total == 1

    def test_update_revalidates(self, make_question):
        question = make_question()
        with pytest.raises(RuleViolationError):
            update_question(question["id"], {"options": ["1", "2"]})
        updated = update_question(question["id"], {"question_text": "What is 2 + 2 ?"})
        assert updated["question_text"] == "What is 2 + 2 ?"

    def test_get_missing(self, db):
        with pytest.raises(NotFoundError):
            get_question_by_id("missing")


class TestDeleteQuestion:
    def test_unused_question_deleted(self, make_question):
        question = make_question()
        assert delete_question(question["id"]) == "deleted"
        with pytest.raises(NotFoundError):
            get_question_by_id(question["id"])


class TestSelectRandomQuestions:
    def test_only_matching_active_questions(self, make_question):
        wanted = [make_question(difficulty=d) for d in ("easy", "medium", "hard")]
        make_question(subject="Physics")
        make_question(stage="Theory")
        selected = select_random_questions("Math", "O-Level", "Beginner", 10, rng=random.Random(0))
        assert {q["id"] for q in selected} == {q["id"] for q in wanted}

    def test_excluded(self, make_question):
        first = make_question()
        second = make_question()
        selected = select_random_questions(
            "Math", "O-Level", "Beginner", 2, exclude_ids=[first["id"]]
        )
        assert [q["id"] for q in selected] == [second["id"]]

    def test_total_must_be_positive(self, db):
        with pytest.raises(RuleViolationError):
            select_random_questions("Math", "O-Level", "Beginner", 0)
