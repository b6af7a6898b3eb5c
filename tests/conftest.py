"""
PyTest configuration and fixtures.

Provider traffic never leaves the process: ``FakeAssistant`` stands in for
``AssistantClient`` at the engine level and ``FakeOpenAI`` mimics the
``beta.threads`` surface of the OpenAI SDK for client-level tests.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from backend.app.core.config import Settings


def make_settings(**overrides: Any) -> Settings:
    base = replace(
        Settings.from_env(),
        openai_api_key="test-key",
        assistant_id="asst_test",
        poll_interval=0.01,
        basic_timeout=5.0,
        interview_timeout=5.0,
        rationale_timeout=5.0,
        batch_size=100,
        batch_base_timeout=60.0,
        batch_per_respondent_timeout=1.0,
        batch_per_question_timeout=2.0,
        pro_rationales=True,
    )
    return replace(base, **overrides)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


class FakeAssistant:
    """Replays queued payloads (or raises queued exceptions) per ``submit``."""

    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.prompts: List[str] = []
        self.timeouts: List[float] = []

    async def submit(self, prompt: str, timeout: float) -> Dict[str, Any]:
        self.prompts.append(prompt)
        self.timeouts.append(timeout)
        if not self.responses:
            raise AssertionError("unexpected provider call")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(prompt)
        return item

    @property
    def calls(self) -> int:
        return len(self.prompts)


def respondents_payload(count: int, answer: Callable[[int], List[Dict[str, Any]]]) -> Dict[str, Any]:
    return {
        "status": "completed",
        "raw_respondents": [
            {"respondentId": f"x{i}", "answers": answer(i)} for i in range(count)
        ],
    }


class _FakeRuns:
    def __init__(self, statuses: List[str], last_error: Optional[str], delay: float = 0.0) -> None:
        self.statuses = list(statuses)
        self.last_error = last_error
        self.delay = delay
        self.retrieved = 0
        self.cancelled: List[str] = []

    async def create(self, thread_id: str, assistant_id: str) -> Any:
        return SimpleNamespace(id="run_1", status="queued", thread_id=thread_id, assistant_id=assistant_id)

    async def retrieve(self, run_id: str, thread_id: str) -> Any:
        self.retrieved += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        error = SimpleNamespace(message=self.last_error) if self.last_error else None
        return SimpleNamespace(id=run_id, status=status, last_error=error)

    async def cancel(self, run_id: str, thread_id: str) -> Any:
        self.cancelled.append(run_id)
        return SimpleNamespace(id=run_id, status="cancelling")


def _text_message(role: str, value: str) -> Any:
    part = SimpleNamespace(type="text", text=SimpleNamespace(value=value))
    return SimpleNamespace(role=role, content=[part])


class _FakeMessages:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.created: List[Dict[str, Any]] = []

    async def create(self, thread_id: str, role: str, content: str) -> Any:
        self.created.append({"thread_id": thread_id, "role": role, "content": content})
        return SimpleNamespace(id="msg_user")

    async def list(self, thread_id: str, order: str = "desc", limit: int = 10) -> Any:
        return SimpleNamespace(data=[_text_message("assistant", self.reply), _text_message("user", "prompt")])


class FakeOpenAI:
    def __init__(
        self,
        reply: str = "{}",
        statuses: Optional[List[str]] = None,
        last_error: Optional[str] = None,
        retrieve_delay: float = 0.0,
    ) -> None:
        self.runs = _FakeRuns(statuses or ["completed"], last_error, retrieve_delay)
        self.messages = _FakeMessages(reply)

        async def create_thread() -> Any:
            return SimpleNamespace(id="thread_1")

        self.beta = SimpleNamespace(
            threads=SimpleNamespace(create=create_thread, runs=self.runs, messages=self.messages)
        )


@pytest.fixture
def yes_no_payload() -> Dict[str, Any]:
    return {
        "form_data": {
            "questions": [
                {"id": "q1", "question": "¿Comprarías el producto?", "type": "yes-no"},
            ],
        },
        "audience_data": {"name": "Jóvenes", "surveyType": "basic"},
    }
