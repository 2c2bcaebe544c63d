"""
Tests for structured evaluation parsing and the scoring request.
"""

import json

import pytest

from conftest import SAMPLE_EVALUATION, ScriptedLLM, tool_call_message
from examprep.schemas.evaluation import with_analytics_defaults
from examprep.services.errors import SchemaError
from examprep.services.evaluation_invoker import (
    EVALUATION_FUNCTION_NAME,
    EvaluationInvoker,
    ParsedEvaluation,
    ParseFailure,
    build_evaluation_prompt,
    parse_evaluation_response,
)
from examprep.services.json_payload import loads_fenced_object, strip_code_fences


def _text_message(content):
    return {"role": "assistant", "content": content}


class TestParseEvaluationResponse:

    def test_tool_call_yields_typed_top_level_fields(self):
        result = parse_evaluation_response(tool_call_message(SAMPLE_EVALUATION))

        assert isinstance(result, ParsedEvaluation)
        assert result.source == "tool_call"
        record = result.record
        assert isinstance(record.total_score, float) and record.total_score == 7
        assert isinstance(record.max_score, float) and record.max_score == 10
        assert record.weak_areas == ["Arithmetic"]
        assert isinstance(record.improvement_suggestions, str)
        assert len(record.detailed_analytics["questions"]) == 2
        assert record.detailed_analytics["concept_wise_performance"]["Arithmetic"]["percentage"] == 40

    def test_fenced_text_parses_to_equivalent_record(self):
        fenced = "```json\n" + json.dumps(SAMPLE_EVALUATION, indent=2) + "\n```"

        from_text = parse_evaluation_response(_text_message(fenced))
        from_tool = parse_evaluation_response(tool_call_message(SAMPLE_EVALUATION))

        assert isinstance(from_text, ParsedEvaluation)
        assert from_text.source == "text"
        assert from_text.record.to_response() == from_tool.record.to_response()

    def test_bare_fence_without_language(self):
        result = parse_evaluation_response(_text_message("```\n{\"total_score\": 3}\n```"))

        assert isinstance(result, ParsedEvaluation)
        assert result.record.total_score == 3

    def test_missing_fields_are_defaulted(self):
        result = parse_evaluation_response(tool_call_message({"weak_areas": ["Algebra"]}))

        record = result.record
        assert record.total_score == 0
        assert record.max_score == 100
        assert record.improvement_suggestions == ""
        assert record.analytics_as_returned() == {}

    def test_absent_concept_breakdown_reads_as_empty_mapping(self):
        payload = {"total_score": 4, "detailed_analytics": {"strengths": ["Clear writing"]}}

        record = parse_evaluation_response(tool_call_message(payload)).record

        # persisted as returned, without the filled defaults
        assert record.analytics_as_returned() == {"strengths": ["Clear writing"]}
        analytics = with_analytics_defaults(record.analytics_as_returned())
        assert analytics["concept_wise_performance"] == {}
        assert analytics["questions"] == []
        assert analytics["areas_to_focus"] == []
        assert analytics["strengths"] == ["Clear writing"]

    def test_off_schema_nested_values_are_kept(self):
        analytics = {
            "questions": [{"question_number": 1, "score": "2/5", "max_score": "5"}],
            "concept_wise_performance": {"Arithmetic": {"percentage": "40%"}},
            "strengths": "Neat handwriting",
        }
        payload = {"total_score": 2, "max_score": 5, "detailed_analytics": analytics}

        result = parse_evaluation_response(tool_call_message(payload))

        assert isinstance(result, ParsedEvaluation)
        assert result.record.total_score == 2
        assert result.record.analytics_as_returned() == analytics

    @pytest.mark.parametrize("analytics", ["n/a", ["q1"], 3, None])
    def test_non_object_analytics_becomes_empty(self, analytics):
        payload = {"total_score": 1, "detailed_analytics": analytics}

        result = parse_evaluation_response(tool_call_message(payload))

        assert isinstance(result, ParsedEvaluation)
        assert result.record.analytics_as_returned() == {}

    def test_null_values_treated_as_missing(self):
        payload = {"total_score": None, "max_score": None, "weak_areas": None}

        record = parse_evaluation_response(tool_call_message(payload)).record

        assert record.total_score == 0
        assert record.max_score == 100
        assert record.weak_areas == []

    def test_scores_taken_at_face_value(self):
        payload = {
            "total_score": 150,
            "max_score": 100,
            "detailed_analytics": {
                "questions": [{"question_number": 1, "score": 1, "max_score": 5}]
            },
        }

        record = parse_evaluation_response(tool_call_message(payload)).record

        assert record.total_score == 150
        assert record.detailed_analytics["questions"][0] == {"question_number": 1, "score": 1, "max_score": 5}

    def test_bad_tool_arguments_fall_back_to_text(self):
        message = tool_call_message("{not json")
        message["content"] = json.dumps({"total_score": 9})

        result = parse_evaluation_response(message)

        assert isinstance(result, ParsedEvaluation)
        assert result.source == "text"
        assert result.record.total_score == 9

    def test_other_function_names_ignored(self):
        message = tool_call_message({"total_score": 1}, name="something_else")

        result = parse_evaluation_response(message)

        assert isinstance(result, ParseFailure)

    def test_prose_only_is_parse_failure(self):
        result = parse_evaluation_response(_text_message("The student did well overall."))

        assert isinstance(result, ParseFailure)
        assert "not valid JSON" in result.reason

    def test_empty_message_is_parse_failure(self):
        assert isinstance(parse_evaluation_response({"content": None}), ParseFailure)

    def test_json_array_is_parse_failure(self):
        result = parse_evaluation_response(_text_message("[1, 2, 3]"))

        assert isinstance(result, ParseFailure)


class TestJsonPayload:

    def test_strip_code_fences(self):
        assert strip_code_fences("```json\n{\"a\": 1}\n```") == '{"a": 1}'
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_object_fallback_finds_embedded_object(self):
        assert loads_fenced_object('Here you go: {"questions": []}') == {"questions": []}

    def test_object_fallback_raises_without_object(self):
        with pytest.raises(ValueError):
            loads_fenced_object("nothing here")


class TestEvaluationInvoker:

    def test_request_declares_and_forces_function(self):
        llm = ScriptedLLM()

        record = EvaluationInvoker(llm).evaluate("Q1: Paris", None, None)

        assert record.total_score == 7
        (call,) = llm.chat_calls
        assert call["tools"][0]["function"]["name"] == EVALUATION_FUNCTION_NAME
        required = call["tools"][0]["function"]["parameters"]["required"]
        assert set(required) == {
            "total_score",
            "max_score",
            "weak_areas",
            "improvement_suggestions",
            "detailed_analytics",
        }
        assert call["tool_choice"] == {
            "type": "function",
            "function": {"name": EVALUATION_FUNCTION_NAME},
        }
        assert call["messages"][0]["role"] == "system"
        assert "Q1: Paris" in call["messages"][1]["content"]

    def test_unusable_response_raises_schema_error(self):
        llm = ScriptedLLM(message=_text_message("sorry, cannot help"))

        with pytest.raises(SchemaError):
            EvaluationInvoker(llm).evaluate("Q1: Paris")


class TestEvaluationPrompt:

    def test_prompt_with_key_and_context(self):
        prompt = build_evaluation_prompt("Q1: Paris", "Q1: Capital of France", "notes.pdf, syllabus.txt")

        assert "STUDENT'S ANSWER SHEET:\nQ1: Paris" in prompt
        assert "ANSWER KEY/QUESTIONS PROVIDED:\nQ1: Capital of France" in prompt
        assert "Available materials: notes.pdf, syllabus.txt" in prompt

    def test_prompt_without_key_asks_to_infer(self):
        prompt = build_evaluation_prompt("Q1: Paris")

        assert "ANSWER KEY/QUESTIONS PROVIDED" not in prompt
        assert "No answer key was provided" in prompt
        assert "COURSE CONTEXT" not in prompt
