"""
Unit tests for services/evaluation/result_extractor.py
"""
import pytest

from evalai.core.exceptions import (
    InvalidJsonSyntax,
    MalformedModelOutput,
    NoJsonFound,
    ResultShapeMismatch,
)
from evalai.models.response import EvaluationResult
from evalai.services.evaluation.result_extractor import extract_evaluation, extract_json_object


@pytest.mark.unit
class TestExtractJsonObject:

    def test_prose_and_code_fence(self):
        raw = (
            'Sure! Here is the result:\n```json\n'
            '{"score":"8/10","evaluation":"ok","mistakes":[],"feedback":"x"}\n```'
        )
        assert extract_json_object(raw) == {"score": "8/10", "evaluation": "ok", "mistakes": [], "feedback": "x"}

    def test_bare_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_nested_braces_use_outermost_bounds(self):
        assert extract_json_object('x {"a": {"b": 2}} y') == {"a": {"b": 2}}

    def test_no_braces(self):
        with pytest.raises(NoJsonFound):
            extract_json_object("I cannot comply.")

    def test_only_opening_brace(self):
        with pytest.raises(NoJsonFound):
            extract_json_object("here it comes {")

    def test_closing_before_opening(self):
        with pytest.raises(NoJsonFound):
            extract_json_object("} oops {")

    def test_two_objects_is_invalid_syntax(self):
        # First "{" to last "}" spans both objects
        with pytest.raises(InvalidJsonSyntax):
            extract_json_object('{"a": 1} and also {"b": 2}')

    def test_broken_json(self):
        with pytest.raises(InvalidJsonSyntax):
            extract_json_object("{'score': '8/10'}")

    def test_errors_are_malformed_output(self):
        assert issubclass(NoJsonFound, MalformedModelOutput)
        assert issubclass(InvalidJsonSyntax, MalformedModelOutput)


@pytest.mark.unit
class TestExtractEvaluation:

    def test_full_result(self):
        raw = '{"score":"7/10","evaluation":"fine","mistakes":["a","b"],"feedback":"more detail"}'
        result = extract_evaluation(raw)
        assert result == EvaluationResult(score="7/10", evaluation="fine", mistakes=["a", "b"], feedback="more detail")

    def test_mistake_order_preserved(self):
        raw = '{"score":"1/2","evaluation":"e","mistakes":["z","a","m"],"feedback":"f"}'
        assert extract_evaluation(raw).mistakes == ["z", "a", "m"]

    def test_missing_field_is_rejected(self):
        with pytest.raises(ResultShapeMismatch):
            extract_evaluation('{"score":"7/10","evaluation":"fine","mistakes":[]}')

    def test_mistakes_must_be_a_list(self):
        with pytest.raises(ResultShapeMismatch):
            extract_evaluation('{"score":"7/10","evaluation":"e","mistakes":"none","feedback":"f"}')

    def test_extra_fields_ignored(self):
        raw = '{"score":"7/10","evaluation":"e","mistakes":[],"feedback":"f","confidence":0.9}'
        assert extract_evaluation(raw).model_dump() == {
            "score": "7/10", "evaluation": "e", "mistakes": [], "feedback": "f",
        }

    def test_result_is_immutable(self):
        result = extract_evaluation('{"score":"7/10","evaluation":"e","mistakes":[],"feedback":"f"}')
        with pytest.raises(Exception):
            result.score = "10/10"
