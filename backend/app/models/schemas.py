"""
Pydantic data models for the survey simulation backend.

``SimulationRequest`` is the canonical shape produced by the payload
normalizer; everything downstream (prompts, batching, aggregation) works on
it and never looks at the raw client JSON again. The response models define
the JSON contract consumed by the front-end, so their field names follow
the historical wire format (camelCase) rather than Python conventions.

All models live only for the duration of one HTTP call.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SimulationKind(str, Enum):
    SURVEY = "encuesta"
    INTERVIEW = "entrevista"


class SurveyMode(str, Enum):
    BASIC = "basic"
    PROFESSIONAL = "professional"


class QuestionKind(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTI_SELECT = "multi_select"
    OPEN_TEXT = "open_text"


class AudienceContext(BaseModel):
    audienceContext: str = ""
    userInsights: str = ""


class Audience(BaseModel):
    """Target audience description; every field is optional."""

    name: str = ""
    description: str = ""
    demographics: Dict[str, Any] = Field(default_factory=dict)
    psychographics: Dict[str, Any] = Field(default_factory=dict)
    context: AudienceContext = Field(default_factory=AudienceContext)


class Question(BaseModel):
    """A normalized question.

    Attributes:
        id: Client identifier, possibly empty; ``result_id`` synthesizes a
            positional placeholder when it is.
        question: Text shown to respondents.
        type: Declared type string, lower-cased (kept for the response echo).
        kind: Derived answer semantics.
        options: Distinct, trimmed option texts in declared order.
        required: Informational only.
    """

    id: str = ""
    question: str = ""
    type: str = ""
    kind: QuestionKind = QuestionKind.OPEN_TEXT
    options: List[str] = Field(default_factory=list)
    required: bool = False

    def result_id(self, position: int) -> str:
        """Identifier used in results; ``position`` is 0-based."""
        return self.id or f"q_{position + 1}"

    @property
    def is_single_choice(self) -> bool:
        return self.kind == QuestionKind.SINGLE_CHOICE

    @property
    def has_options(self) -> bool:
        return bool(self.options)


class SimulationRequest(BaseModel):
    kind: SimulationKind = SimulationKind.SURVEY
    mode: Optional[SurveyMode] = SurveyMode.BASIC
    respondent_count: int = 0
    audience: Audience = Field(default_factory=Audience)
    questions: List[Question] = Field(default_factory=list)

    def prompt_questions(self) -> List[Dict[str, Any]]:
        """Questions as embedded in provider prompts."""
        return [
            {
                "id": q.result_id(i),
                "question": q.question,
                "type": q.type or q.kind.value,
                "options": list(q.options),
            }
            for i, q in enumerate(self.questions)
        ]


class RespondentRecord(BaseModel):
    """One synthetic respondent after canonicalization.

    ``answers`` maps a question id to the selected canonical option texts.
    Single-choice entries hold exactly one text; invalid single-choice
    answers are absent rather than empty. Multi-select entries may be empty.
    """

    respondentId: str
    answers: Dict[str, List[str]] = Field(default_factory=dict)

    def to_wire(self, questions: List[Question]) -> Dict[str, Any]:
        rows: List[Dict[str, Any]] = []
        for i, q in enumerate(questions):
            qid = q.result_id(i)
            if qid not in self.answers:
                continue
            selected = self.answers[qid]
            if q.is_single_choice:
                rows.append({"questionId": qid, "choice": selected[0]})
            else:
                rows.append({"questionId": qid, "choices": list(selected)})
        return {"respondentId": self.respondentId, "answers": rows}


class OptionShare(BaseModel):
    text: str
    percentage: int = Field(..., ge=0, le=100)


class AggregateResult(BaseModel):
    questionId: str
    question: str
    type: str
    kind: QuestionKind
    options: List[str] = Field(default_factory=list)
    aggregates: List[OptionShare] = Field(default_factory=list)
    rationale: str = ""


class InterviewAnswer(BaseModel):
    text: str


class InterviewResult(BaseModel):
    questionId: str
    question: str
    answers: List[InterviewAnswer] = Field(default_factory=list)


class SimulationResponse(BaseModel):
    success: bool = True
    source: str = "assistant"
    simulationId: str
    status: str = "completed"
    mode: str
    results: List[Any] = Field(default_factory=list)
    rawRespondents: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(use_enum_values=True)


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: Optional[str] = None
