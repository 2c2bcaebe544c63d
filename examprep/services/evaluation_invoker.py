# examprep/services/evaluation_invoker.py
"""
Evaluation Invoker: ask the LLM for a structured score of one answer sheet.

The request declares a ``submit_evaluation`` function and forces the model
to call it. The response is parsed in order:

(a) arguments of a ``submit_evaluation`` tool call
(b) the text content with markdown fences stripped
(c) otherwise a ParseFailure, which the pipeline treats as a hard failure

Missing top-level fields are defaulted by ``EvaluationRecord``. Scores are
taken at face value: no clamping and no check that questions sum to the total.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from examprep.schemas.evaluation import EvaluationRecord
from examprep.services.errors import SchemaError
from examprep.services.json_payload import loads_fenced
from examprep.services.llm_client import LLMGatewayClient

logger = logging.getLogger(__name__)

EVALUATION_FUNCTION_NAME = "submit_evaluation"

EVALUATOR_SYSTEM_PROMPT = (
    "You are an expert exam evaluator. Analyze student answers and provide "
    "comprehensive feedback."
)

_QUESTION_FIELDS = [
    "question_number",
    "question_text",
    "student_answer",
    "expected_answer",
    "score",
    "max_score",
    "feedback",
    "improvement_tip",
]

EVALUATION_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "total_score": {"type": "number", "description": "Total score obtained by student"},
        "max_score": {"type": "number", "description": "Maximum possible score"},
        "weak_areas": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of weak areas",
        },
        "improvement_suggestions": {
            "type": "string",
            "description": "Detailed suggestions for improvement",
        },
        "detailed_analytics": {
            "type": "object",
            "properties": {
                "questions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "question_number": {"type": "string"},
                            "question_text": {"type": "string"},
                            "student_answer": {"type": "string"},
                            "expected_answer": {"type": "string"},
                            "score": {"type": "number"},
                            "max_score": {"type": "number"},
                            "feedback": {"type": "string"},
                            "improvement_tip": {"type": "string"},
                        },
                        "required": _QUESTION_FIELDS,
                    },
                },
                "concept_wise_performance": {
                    "type": "object",
                    "additionalProperties": {
                        "type": "object",
                        "properties": {
                            "score": {"type": "number"},
                            "max_score": {"type": "number"},
                            "percentage": {"type": "number"},
                        },
                    },
                },
                "strengths": {"type": "array", "items": {"type": "string"}},
                "areas_to_focus": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["questions", "concept_wise_performance", "strengths", "areas_to_focus"],
        },
    },
    "required": [
        "total_score",
        "max_score",
        "weak_areas",
        "improvement_suggestions",
        "detailed_analytics",
    ],
}

EVALUATION_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": EVALUATION_FUNCTION_NAME,
        "description": "Submit the comprehensive evaluation results",
        "parameters": EVALUATION_PARAMETERS,
    },
}

EVALUATION_TOOL_CHOICE: Dict[str, Any] = {
    "type": "function",
    "function": {"name": EVALUATION_FUNCTION_NAME},
}


@dataclass
class ParsedEvaluation:
    record: EvaluationRecord
    source: str  # "tool_call" / "text"


@dataclass
class ParseFailure:
    reason: str


ParseResult = Union[ParsedEvaluation, ParseFailure]


def build_evaluation_prompt(
    sheet_text: str,
    key_text: Optional[str] = None,
    course_context: Optional[str] = None,
) -> str:
    prompt = (
        "You are an expert exam evaluator. Analyze the student's answers and provide "
        "detailed evaluation.\n\n"
        f"STUDENT'S ANSWER SHEET:\n{sheet_text}\n"
    )
    if key_text:
        prompt += (
            f"\nANSWER KEY/QUESTIONS PROVIDED:\n{key_text}\n\n"
            "If the answer key contains only questions without answers, generate the "
            "expected answers based on the course context below.\n"
        )
    else:
        prompt += (
            "\nNo answer key was provided. Infer the questions and the expected answers "
            "from the student's answers and the course context below.\n"
        )
    if course_context:
        prompt += f"\nCOURSE CONTEXT:\nAvailable materials: {course_context}\n"
    prompt += (
        "\nAnalyze the student's performance and provide detailed evaluation including:\n"
        "- Overall score and maximum possible score\n"
        "- Weak areas where student needs improvement\n"
        "- Detailed improvement suggestions\n"
        "- Question-by-question analysis with student's answer, expected answer, score, "
        "feedback, and improvement tips\n"
        "- Concept-wise performance breakdown\n"
        "- Student's strengths and areas to focus on\n"
    )
    return prompt


def _record_from(payload: Any, source: str) -> ParseResult:
    if not isinstance(payload, dict):
        return ParseFailure(f"{source} payload is {type(payload).__name__}, expected an object")
    try:
        return ParsedEvaluation(record=EvaluationRecord.model_validate(payload), source=source)
    except ValidationError as e:
        return ParseFailure(f"{source} payload has invalid field types: {e.error_count()} error(s)")


def parse_evaluation_response(message: Dict[str, Any]) -> ParseResult:
    """Parse ``choices[0].message`` of a scoring request."""
    failures: List[str] = []

    for call in message.get("tool_calls") or []:
        function = (call or {}).get("function") or {}
        if function.get("name") != EVALUATION_FUNCTION_NAME:
            continue
        arguments = function.get("arguments")
        try:
            payload = arguments if isinstance(arguments, dict) else json.loads(arguments or "")
        except (TypeError, ValueError):
            failures.append("tool call arguments are not valid JSON")
            break
        result = _record_from(payload, "tool_call")
        if isinstance(result, ParsedEvaluation):
            return result
        failures.append(result.reason)
        break

    content = message.get("content")
    if isinstance(content, str) and content.strip():
        try:
            payload = loads_fenced(content)
        except ValueError:
            failures.append("text content is not valid JSON")
        else:
            result = _record_from(payload, "text")
            if isinstance(result, ParsedEvaluation):
                return result
            failures.append(result.reason)
    else:
        failures.append("no tool call and no text content")

    return ParseFailure("; ".join(failures))


class EvaluationInvoker:
    def __init__(self, llm: LLMGatewayClient) -> None:
        self.llm = llm

    def evaluate(
        self,
        sheet_text: str,
        key_text: Optional[str] = None,
        course_context: Optional[str] = None,
    ) -> EvaluationRecord:
        logger.info("Evaluating answer sheet with LLM")
        message = self.llm.chat(
            [
                {"role": "system", "content": EVALUATOR_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_evaluation_prompt(sheet_text, key_text, course_context),
                },
            ],
            tools=[EVALUATION_TOOL],
            tool_choice=EVALUATION_TOOL_CHOICE,
        )
        result = parse_evaluation_response(message)
        if isinstance(result, ParseFailure):
            logger.error(f"No usable structured evaluation: {result.reason}")
            raise SchemaError("Failed to get structured evaluation from AI.")
        logger.info(f"Evaluation parsed from {result.source}")
        return result.record
