"""Per-message conversation pipeline.

A turn moves strictly forward through :class:`TurnState`:

    received -> stored -> context-gathered -> prompted -> parsed -> reconciled -> delivered

The first failure ends the turn in ``failed`` and the user gets an apology
chosen by the error kind.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from bellpull.config import Settings, settings as default_settings
from bellpull.errors import AppError, ErrorKind
from bellpull.llm.prompt import APOLOGY, build_intake_prompt, build_system_prompt
from bellpull.memory.formatter import format_memories
from bellpull.memory.tags import parse_analysis
from bellpull.messages.store import to_llm_messages

if TYPE_CHECKING:
    from bellpull.bot.delivery import DeliveryEngine
    from bellpull.llm.client import LLMClient
    from bellpull.memory.models import Memory, MemoryAnalysis
    from bellpull.memory.store import MemoryStore
    from bellpull.messages.models import ChatMessage
    from bellpull.messages.store import MessageStore

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "/"

ERROR_REPLIES: dict[ErrorKind, str] = {
    ErrorKind.STORAGE: "I am having trouble accessing my records at the moment.",
    ErrorKind.LLM: "I am experiencing some difficulty processing your request.",
    ErrorKind.DELIVERY: "I am unable to deliver my response properly.",
    ErrorKind.VALIDATION: "I seem to have misunderstood something in your message.",
    ErrorKind.UNEXPECTED: "Something quite unexpected has occurred.",
}


def apology_for(error: AppError) -> str:
    """The message sent to the user when a turn fails with *error*."""
    return f"{APOLOGY} {ERROR_REPLIES[error.kind]}"


class TurnState(StrEnum):
    RECEIVED = "received"
    STORED = "stored"
    CONTEXT_GATHERED = "context-gathered"
    PROMPTED = "prompted"
    PARSED = "parsed"
    RECONCILED = "reconciled"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class InboundMessage:
    """A chat message received from Telegram."""

    chat_id: str
    sender_id: str
    sender_name: str
    text: str

    @property
    def is_command(self) -> bool:
        return self.text.startswith(COMMAND_PREFIX)


@dataclass
class TurnResult:
    """Where a turn ended up, and what it produced along the way."""

    state: TurnState
    chunks: list[str] = field(default_factory=list)
    analysis: MemoryAnalysis | None = None
    error: AppError | None = None
    failed_after: TurnState | None = None


class ConversationPipeline:
    """Runs one inbound message through memory, Claude, and delivery."""

    def __init__(
        self,
        *,
        llm: LLMClient,
        memory: MemoryStore,
        messages: MessageStore,
        delivery: DeliveryEngine,
        settings: Settings | None = None,
    ) -> None:
        self._llm = llm
        self._memory = memory
        self._messages = messages
        self._delivery = delivery
        self._settings = settings or default_settings

    def build_system_prompt(self, memories: list[Memory]) -> str:
        """System prompt for a turn, with intake guidance while memories are few."""
        prompt = build_system_prompt(format_memories(memories), self._memory.today())
        if len(memories) < self._settings.intake_memory_threshold:
            prompt = f"{prompt}\n\n{build_intake_prompt()}"
        return prompt

    async def _gather_context(self, chat_id: str) -> tuple[list[Memory], list[ChatMessage]]:
        """Read memories and chat history concurrently.

        If either read fails the other is cancelled, and the first failure
        is raised as-is.
        """
        try:
            async with asyncio.TaskGroup() as group:
                memories = group.create_task(self._memory.get_all())
                history = group.create_task(
                    self._messages.history(chat_id, limit=self._settings.history_limit)
                )
        except ExceptionGroup as exc:
            raise exc.exceptions[0]
        return memories.result(), history.result()

    async def handle(self, inbound: InboundMessage) -> TurnResult:
        """Process one message end to end. Never raises."""
        logger.info("Received from %s: %s", inbound.chat_id, inbound.text[:100])

        if inbound.is_command:
            return TurnResult(state=TurnState.RECEIVED)

        state = TurnState.RECEIVED
        analysis: MemoryAnalysis | None = None

        def advance(new_state: TurnState) -> None:
            nonlocal state
            logger.debug("Chat %s: %s -> %s", inbound.chat_id, state, new_state)
            state = new_state

        try:
            await self._messages.append(
                chat_id=inbound.chat_id,
                sender_id=inbound.sender_id,
                sender_name=inbound.sender_name,
                message=inbound.text,
                is_bot=False,
            )
            advance(TurnState.STORED)

            memories, history = await self._gather_context(inbound.chat_id)
            advance(TurnState.CONTEXT_GATHERED)

            reply = await self._llm.generate_text(
                to_llm_messages(history),
                system_prompt=self.build_system_prompt(memories),
            )
            advance(TurnState.PROMPTED)

            analysis = parse_analysis(reply)
            advance(TurnState.PARSED)

            await self._memory.reconcile(analysis)
            # Debug mode shows the raw reply, tags and all.
            outgoing = reply if self._settings.debug else analysis.response
            advance(TurnState.RECONCILED)

            chunks: list[str] = []
            if outgoing.strip():
                chunks = await self._delivery.send(inbound.chat_id, outgoing)
            else:
                logger.warning("Empty reply for chat %s; nothing to send", inbound.chat_id)
            advance(TurnState.DELIVERED)
            return TurnResult(state=state, chunks=chunks, analysis=analysis)

        except Exception as exc:
            error = AppError.wrap(ErrorKind.UNEXPECTED, "Unexpected pipeline failure", exc)
            await self.handle_error(inbound.chat_id, error)
            return TurnResult(
                state=TurnState.FAILED, analysis=analysis, error=error, failed_after=state
            )

    async def handle_error(self, chat_id: str, error: AppError) -> None:
        """Log *error* and tell the user. A failed apology is logged, not raised."""
        logger.error("[%s] %s", error.kind, error.message, exc_info=error.cause or error)
        try:
            await self._delivery.reply(chat_id, apology_for(error))
        except Exception:
            logger.exception(
                "[%s] Critical: failed to send error message to chat %s",
                ErrorKind.UNEXPECTED,
                chat_id,
            )
