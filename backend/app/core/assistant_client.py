"""
Client for the OpenAI Assistants API (threads and runs).

One call walks a fixed state machine: a thread is created, the prompt is
attached as a user message, a run is started and then polled until it
reaches a terminal status. The caller's deadline covers the whole sequence,
so a hung SDK call times out like a slow run. Polling sleeps with
``asyncio.sleep`` so concurrent requests keep being served while a run is
in progress.

The SDK handle is created lazily once per process and shared read-only by
all requests. Tests inject a fake object exposing the same ``beta.threads``
methods.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import openai
from openai import AsyncOpenAI

from .config import Settings, get_settings
from .errors import ParseError, ProviderError, ProviderFailure, ProviderTimeout

logger = logging.getLogger("assistant_client")

_CLIENT: Optional[AsyncOpenAI] = None
_CANCEL_TIMEOUT = 5.0

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")
_OBJECT = re.compile(r"(\{.*\})", re.DOTALL)


class RunPhase(str, Enum):
    CREATED = "created"
    MESSAGE_ATTACHED = "message_attached"
    RUNNING = "running"
    FINISHED = "finished"


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    INCOMPLETE = "incomplete"
    REQUIRES_ACTION = "requires_action"

    @classmethod
    def parse(cls, value: Any) -> "RunStatus":
        # Statuses added to the API later keep the run in the polling loop.
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @property
    def failure_reason(self) -> Optional[ProviderFailure]:
        if self == RunStatus.COMPLETED:
            return None
        if self == RunStatus.REQUIRES_ACTION:
            return ProviderFailure.REQUIRES_ACTION
        if self in _TERMINAL:
            return ProviderFailure.TERMINAL_FAILURE
        return None


_TERMINAL = {
    RunStatus.COMPLETED,
    RunStatus.FAILED,
    RunStatus.CANCELLED,
    RunStatus.EXPIRED,
    RunStatus.INCOMPLETE,
    RunStatus.REQUIRES_ACTION,
}


def get_openai_client(settings: Optional[Settings] = None) -> AsyncOpenAI:
    """Return the shared SDK handle, creating it on first use."""
    global _CLIENT
    settings = settings or get_settings()
    if not settings.openai_api_key:
        raise ProviderError("OPENAI_API_KEY is not set", reason=ProviderFailure.NOT_CONFIGURED)
    if _CLIENT is None:
        _CLIENT = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
    return _CLIENT


def extract_assistant_text(messages: Iterable[Any]) -> str:
    """Return the first non-empty text part of the newest assistant message.

    ``messages`` must already be ordered newest first.
    """
    for message in messages:
        if getattr(message, "role", None) != "assistant":
            continue
        for part in getattr(message, "content", None) or []:
            if getattr(part, "type", None) != "text":
                continue
            value = getattr(getattr(part, "text", None), "value", None)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def parse_json_payload(text: str) -> Dict[str, Any]:
    """Tolerant JSON extraction: strip Markdown fences, then parse.

    Falls back to the widest ``{...}`` span in the text.

    Raises:
        ParseError: If no JSON object can be recovered.
    """
    cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", str(text or "").strip())).strip()
    if not cleaned:
        raise ParseError("Assistant returned no text")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _OBJECT.search(cleaned)
        if not match:
            raise ParseError("Assistant reply is not valid JSON")
        try:
            parsed = json.loads(match.group(1))
        except json.JSONDecodeError as exc:
            raise ParseError(f"Assistant reply is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ParseError("Assistant reply is not a JSON object")
    return parsed


class _RunState:
    """Progress of one run, kept so a timeout can cancel what was started."""

    def __init__(self) -> None:
        self.phase = RunPhase.CREATED
        self.thread_id: Optional[str] = None
        self.run_id: Optional[str] = None
        self.status: Optional[RunStatus] = None


class AssistantClient:
    """Runs one prompt against the configured assistant per ``submit`` call."""

    def __init__(
        self,
        client: Any = None,
        assistant_id: Optional[str] = None,
        poll_interval: Optional[float] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self.assistant_id = assistant_id or self._settings.assistant_id
        self.poll_interval = poll_interval if poll_interval is not None else self._settings.poll_interval

    def _resolve_client(self) -> Any:
        if self._client is None:
            self._client = get_openai_client(self._settings)
        return self._client

    async def submit(self, prompt: str, timeout: float) -> Dict[str, Any]:
        text = await self.run_prompt(prompt, timeout)
        return parse_json_payload(text)

    async def run_prompt(self, prompt: str, timeout: float) -> str:
        """Run ``prompt`` to completion and return the assistant's text.

        ``timeout`` bounds the whole exchange, SDK calls included, not only
        the polling loop.

        Raises:
            ProviderTimeout: If no text is available after ``timeout`` seconds.
            ProviderError: On a terminal status other than ``completed`` or an
                SDK failure.
            ParseError: If the completed run produced no text.
        """
        if not self.assistant_id:
            raise ProviderError("ASSISTANT_ID is not set", reason=ProviderFailure.NOT_CONFIGURED)
        threads = self._resolve_client().beta.threads
        state = _RunState()
        loop = asyncio.get_running_loop()
        start = loop.time()

        try:
            messages = await asyncio.wait_for(self._drive(threads, prompt, state), timeout)
        except asyncio.TimeoutError:
            status = state.status.value if state.status else None
            logger.error(
                "Run %s timed out after %.1fs during %s (status %s)",
                state.run_id, loop.time() - start, state.phase.value, status,
            )
            if state.run_id and state.thread_id:
                await self._cancel(threads, state.thread_id, state.run_id)
            raise ProviderTimeout(timeout, status=status)
        except openai.OpenAIError as exc:
            logger.error("Assistant call failed during %s: %s", state.phase.value, exc)
            raise ProviderError(f"Assistant request failed: {exc}") from exc

        text = extract_assistant_text(getattr(messages, "data", None) or [])
        if not text:
            raise ParseError("Assistant returned no text")
        logger.info("Run %s completed in %.1fs", state.run_id, loop.time() - start)
        return text

    async def _drive(self, threads: Any, prompt: str, state: _RunState) -> Any:
        thread = await threads.create()
        state.thread_id = getattr(thread, "id", None)
        if not state.thread_id:
            raise ProviderError("Thread creation returned no id")
        await threads.messages.create(thread_id=state.thread_id, role="user", content=prompt)
        state.phase = RunPhase.MESSAGE_ATTACHED
        run = await threads.runs.create(thread_id=state.thread_id, assistant_id=self.assistant_id)
        state.run_id = getattr(run, "id", None)
        if not state.run_id:
            raise ProviderError("Run creation returned no id")
        state.phase = RunPhase.RUNNING
        logger.info("Run %s started on thread %s", state.run_id, state.thread_id)
        logger.debug("Prompt for run %s:\n%s", state.run_id, prompt)

        while True:
            run = await threads.runs.retrieve(run_id=state.run_id, thread_id=state.thread_id)
            state.status = RunStatus.parse(getattr(run, "status", None))
            if state.status == RunStatus.COMPLETED:
                break
            if state.status.is_terminal:
                last_error = getattr(getattr(run, "last_error", None), "message", None)
                reason = last_error or state.status.value
                logger.error("Run %s ended with status %s: %s", state.run_id, state.status.value, reason)
                raise ProviderError(
                    f"Run status: {reason}",
                    reason=state.status.failure_reason or ProviderFailure.TERMINAL_FAILURE,
                    status=state.status.value,
                )
            await asyncio.sleep(self.poll_interval)

        state.phase = RunPhase.FINISHED
        return await threads.messages.list(thread_id=state.thread_id, order="desc", limit=10)

    async def _cancel(self, threads: Any, thread_id: str, run_id: str) -> None:
        try:
            await asyncio.wait_for(
                threads.runs.cancel(run_id=run_id, thread_id=thread_id), _CANCEL_TIMEOUT
            )
        except Exception as exc:
            logger.warning("Could not cancel run %s after timeout: %s", run_id, exc)
