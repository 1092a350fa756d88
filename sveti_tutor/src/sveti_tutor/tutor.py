"""
Sveti Tutor Session

Single owner of the conversation store, the personalization gate and the
completion client. All state changes happen here, on the event loop:

1. Store the student's message
2. Let the personalization gate intercept (ask about games / read the reply)
3. Otherwise compose instructions and call the completion client
4. Append the reply, unless the conversation was cleared or switched while
   we were waiting
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from sveti_tutor.completion_client import (
    CompletionClient,
    ErrorCategory,
    build_client,
)
from sveti_tutor.config import TutorSettings
from sveti_tutor.conversation_store import ConversationStore
from sveti_tutor.errors import RequestInFlightError, StorageError
from sveti_tutor.learning_styles import (
    DEFAULT_LEARNING_STYLE,
    LearningStyle,
    parse_learning_style,
)
from sveti_tutor.message import Message, PERSONALIZATION_ACTION
from sveti_tutor.personalization_gate import GateAction, PersonalizationGate
from sveti_tutor.prompt_composer import build_api_messages, compose_instructions
from sveti_tutor.prompts import DEFAULT_SUBJECT, normalize_subject
from sveti_tutor.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
    SupabaseStorage,
)

logger = logging.getLogger(__name__)

LEARNING_STYLE_KEY = "sveti-learning-style"

ERROR_HINTS = {
    ErrorCategory.AUTHENTICATION: "There seems to be an authentication issue.",
    ErrorCategory.RATE_LIMIT: "I need to slow down a bit due to high usage.",
    ErrorCategory.QUOTA: "The AI service has reached its usage limit for now.",
    ErrorCategory.UNAVAILABLE: "The AI service is temporarily unavailable.",
    ErrorCategory.NETWORK: "There seems to be a connection issue.",
    ErrorCategory.UNEXPECTED: "Something unexpected happened.",
}

GENERIC_APOLOGY = (
    "I'm experiencing some technical difficulties right now. Please try again in a moment, "
    "and I'll do my best to help you with your studies! 📚"
)


def completion_error_message(category: Optional[ErrorCategory]) -> str:
    """User-facing text for a failed completion. Never includes the raw error."""
    hint = ERROR_HINTS.get(category or ErrorCategory.UNEXPECTED, ERROR_HINTS[ErrorCategory.UNEXPECTED])
    return (
        f"I'm having trouble connecting right now. {hint} "
        "Let me try to help you anyway - could you rephrase your question?"
    )


def build_storage(settings: TutorSettings, supabase_client=None) -> KeyValueStorage:
    backend = settings.storage_backend
    if backend == "memory":
        return InMemoryStorage()
    if backend == "supabase":
        if supabase_client is None:
            raise ValueError("SVETI_STORAGE_BACKEND=supabase needs a Supabase client")
        return SupabaseStorage(supabase_client, table=settings.kv_table)
    if backend == "file":
        return JsonFileStorage(settings.storage_path)
    raise ValueError(f"Unknown storage backend: {backend}")


@dataclass
class SendResult:
    """What happened to one submitted message."""
    subject: str
    user_message: Optional[Message] = None
    replies: List[Message] = field(default_factory=list)
    action: Optional[GateAction] = None
    dropped: bool = False  # Reply discarded because the conversation changed meanwhile

    @property
    def error(self) -> bool:
        return any(reply.error for reply in self.replies)


class SvetiTutor:
    """
    One student's tutoring session across subjects.

    Only one message may be in flight at a time; callers should disable
    submission while is_loading is True.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        client: CompletionClient,
        settings: Optional[TutorSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.settings = settings or TutorSettings()
        self.storage = storage
        self.client = client
        self.store = ConversationStore(storage)
        self.gate = PersonalizationGate(
            storage,
            ask_delay_seconds=self.settings.ask_delay_seconds,
            ack_delay_seconds=self.settings.ack_delay_seconds
        )
        self._sleep = sleep
        self._in_flight = False

        self.subject = normalize_subject(self.settings.default_subject) or DEFAULT_SUBJECT
        self.learning_style = self._load_learning_style()
        self.store.load(self.subject)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[TutorSettings] = None,
        storage: Optional[KeyValueStorage] = None,
        client: Optional[CompletionClient] = None,
        supabase_client=None
    ) -> "SvetiTutor":
        settings = settings or TutorSettings.from_env()
        storage = storage or build_storage(settings, supabase_client=supabase_client)
        client = client or build_client(settings)
        return cls(storage=storage, client=client, settings=settings)

    @property
    def is_loading(self) -> bool:
        return self._in_flight

    def messages(self, subject: Optional[str] = None) -> List[Message]:
        return self.store.messages(self._resolve_subject(subject))

    def switch_subject(self, subject: str) -> List[Message]:
        """Make subject current and reload its conversation from storage."""
        key = self._resolve_subject(subject)
        self.subject = key
        logger.info(f"📚 [SvetiTutor] Switched subject to {key}")
        return self.store.load(key)

    def set_learning_style(self, style) -> LearningStyle:
        parsed = parse_learning_style(style)
        if parsed is None:
            raise ValueError(f"Unknown learning style: {style}")
        self.learning_style = parsed
        try:
            self.storage.set(LEARNING_STYLE_KEY, parsed.value)
        except StorageError as e:
            logger.warning(f"⚠️ [SvetiTutor] Failed to save learning style: {e}")
        logger.info(f"🎨 [SvetiTutor] Learning style set to {parsed.value}")
        return parsed

    def clear_conversation(self, subject: Optional[str] = None):
        """Clear one subject's messages and reset game personalization."""
        key = self._resolve_subject(subject)
        self.store.clear(key)
        self.gate.reset()

    async def send_message(self, content: str, action_type: Optional[str] = None) -> SendResult:
        """
        Submit a student message for the current subject.

        Never raises for completion or storage failures: those become an
        assistant message flagged as an error.

        Raises:
            RequestInFlightError: another message is still being answered
        """
        text = (content or "").strip()
        subject = self.subject
        result = SendResult(subject=subject)
        if not text:
            return result

        if self._in_flight:
            raise RequestInFlightError("A message is already being answered")

        self._in_flight = True
        generation = None
        try:
            # The reply to the game question is handled locally; tag it so it
            # never ends up in completion context.
            tag = PERSONALIZATION_ACTION if self.gate.awaiting_reply else action_type
            user_message = Message.user(text, action_type=tag)
            self.store.append(subject, user_message)
            generation = self.store.generation(subject)
            result.user_message = user_message

            history = self.store.messages(subject)
            decision = self.gate.evaluate(history, text)
            result.action = decision.action

            if decision.intercepted:
                # Deliberate pause so the question/acknowledgment reads naturally
                await self._sleep(decision.delay_seconds)
                reply = Message.assistant(decision.reply, action_type=PERSONALIZATION_ACTION)
                if not self._append_if_current(subject, generation, reply, result):
                    if decision.action == GateAction.ASK:
                        # The question was never shown, so don't treat the next message as its answer
                        self.gate.reset()
                return result

            state = self.gate.state
            instructions = compose_instructions(
                subject,
                action_type,
                self.learning_style,
                state.preference_status,
                state.resolved_preferences,
                text
            )
            api_messages = build_api_messages(instructions, history, self.settings.context_messages)
            logger.info(f"🤖 [SvetiTutor] Requesting completion ({len(api_messages)} messages, subject={subject})")

            completion = await self.client.complete(
                api_messages,
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature
            )

            if completion.ok:
                reply = Message.assistant(
                    completion.content,
                    action_type=action_type,
                    learning_style=self.learning_style.value
                )
            else:
                logger.warning(f"⚠️ [SvetiTutor] Completion failed ({completion.category}): {completion.error}")
                reply = Message.assistant(completion_error_message(completion.category), error=True)

            self._append_if_current(subject, generation, reply, result)
            return result

        except Exception as e:
            logger.error(f"❌ [SvetiTutor] Chat error: {e}", exc_info=True)
            if generation is None:
                generation = self.store.generation(subject)
            reply = Message.assistant(GENERIC_APOLOGY, error=True)
            self._append_if_current(subject, generation, reply, result)
            return result
        finally:
            self._in_flight = False

    def summary(self) -> Dict:
        return {
            "subject": self.subject,
            "learning_style": self.learning_style.value,
            "personalization": self.gate.state.to_summary(),
            "is_loading": self.is_loading,
            "message_count": len(self.store.messages(self.subject)),
            "model": self.client.model,
        }

    def _append_if_current(self, subject: str, generation: int, message: Message, result: SendResult) -> bool:
        """Append unless the subject was switched or its conversation cleared/reloaded meanwhile."""
        if subject != self.subject or self.store.generation(subject) != generation:
            logger.info(f"⏭️ [SvetiTutor] Dropping reply for {subject}: conversation changed while waiting")
            result.dropped = True
            return False
        self.store.append(subject, message)
        result.replies.append(message)
        return True

    def _resolve_subject(self, subject: Optional[str]) -> str:
        if subject is None:
            return self.subject
        key = normalize_subject(subject)
        if key is None:
            raise ValueError(f"Unknown subject: {subject}")
        return key

    def _load_learning_style(self) -> LearningStyle:
        stored = None
        try:
            stored = self.storage.get(LEARNING_STYLE_KEY)
        except StorageError as e:
            logger.warning(f"⚠️ [SvetiTutor] Failed to read learning style: {e}")
        return (
            parse_learning_style(stored)
            or parse_learning_style(self.settings.default_learning_style)
            or DEFAULT_LEARNING_STYLE
        )
