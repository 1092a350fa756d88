"""
Personalization Gate

Decides, for each outgoing user message, whether the tutor should:
- ask the one-time "favorite game" clarifying question,
- interpret the student's reply to that question locally, or
- pass the message through to the completion endpoint.

The clarifying question and its answer never reach the completion endpoint.
Gate state is persisted under three storage keys so it survives restarts.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sveti_tutor.errors import StorageError
from sveti_tutor.message import Message, count_user_messages
from sveti_tutor.personalization_state import (
    PersonalizationState,
    PersonalizationStage,
    dedupe_labels,
)
from sveti_tutor.storage import KeyValueStorage

logger = logging.getLogger(__name__)

PREFS_KEY = "sveti-game-prefs"        # JSON array of strings (max 2)
ASKED_KEY = "sveti-game-asked"        # "true" once we've asked
PREFERS_KEY = "sveti-prefers-games"   # "true" | "false" | ""

ASK_AFTER_USER_TURNS = 3
DEFAULT_ASK_DELAY_SECONDS = 1.5
DEFAULT_ACK_DELAY_SECONDS = 2.0

CLARIFYING_QUESTION = (
    "Quick check: are you into any video games? If yes, name one or two. "
    "If not, just say 'no'."
)
ACCEPTED_TEMPLATE = "Got it — I'll use {games} for examples. Want to try a practice problem?"
DECLINED_REPLY = "No problem — I'll stick to neutral examples. Want a practice problem?"

_NEGATION_RE = re.compile(r"\b(no|none|not|nah|nope)\b", re.IGNORECASE)
_SEPARATOR_RE = re.compile(r",|\band\b", re.IGNORECASE)
_FILLER_RE = re.compile(r"\b(i['’]?m|into|right now|playing)\b", re.IGNORECASE)


def is_decline(text: str) -> bool:
    return bool(_NEGATION_RE.search(text or ""))


def parse_game_preferences(text: str) -> List[str]:
    """
    Pull up to two game names out of a free-text reply.

    Splits on commas or the word "and". A negation word anywhere in the
    reply means no games. Returned labels are the raw spans, trimmed and
    deduplicated.
    """
    if not text or is_decline(text):
        return []
    return dedupe_labels(_SEPARATOR_RE.split(text))


def clean_label(label: str) -> str:
    """Strip conversational filler ("I'm into ... right now") for display."""
    cleaned = _FILLER_RE.sub("", label)
    return re.sub(r"\s+", " ", cleaned).strip()


def acknowledgment_for(preferences: List[str]) -> str:
    cleaned = [c for c in (clean_label(p) for p in preferences) if c]
    games = ", ".join(cleaned) if cleaned else ", ".join(preferences)
    return ACCEPTED_TEMPLATE.format(games=games)


class GateAction(Enum):
    PASS_THROUGH = "pass_through"
    ASK = "ask"
    ACKNOWLEDGE = "acknowledge"


@dataclass
class GateDecision:
    """What the tutor should do with the message just submitted."""
    action: GateAction
    reply: Optional[str] = None
    delay_seconds: float = 0.0
    preferences: List[str] = field(default_factory=list)

    @property
    def intercepted(self) -> bool:
        return self.action != GateAction.PASS_THROUGH


class PersonalizationGate:
    """
    Owns the PersonalizationState and its persistence.

    evaluate() is the only place the state advances during a conversation;
    reset() is called when a conversation is cleared.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        ask_after_user_turns: int = ASK_AFTER_USER_TURNS,
        ask_delay_seconds: float = DEFAULT_ASK_DELAY_SECONDS,
        ack_delay_seconds: float = DEFAULT_ACK_DELAY_SECONDS
    ):
        self.storage = storage
        self.ask_after_user_turns = ask_after_user_turns
        self.ask_delay_seconds = ask_delay_seconds
        self.ack_delay_seconds = ack_delay_seconds
        self.state = self.load()

    @property
    def awaiting_reply(self) -> bool:
        return self.state.stage == PersonalizationStage.AWAITING_REPLY

    def evaluate(self, messages: List[Message], text: str) -> GateDecision:
        """
        Args:
            messages: The subject's conversation, including the message just submitted
            text: The text of the message just submitted

        Returns:
            GateDecision describing whether to intercept and what to say
        """
        stage = self.state.stage

        if stage == PersonalizationStage.NOT_ASKED:
            user_turns = count_user_messages(messages)
            if user_turns >= self.ask_after_user_turns:
                self.state.mark_asked()
                self._save()
                logger.info(f"🎮 [PersonalizationGate] Asking about games after {user_turns} user turns")
                return GateDecision(
                    action=GateAction.ASK,
                    reply=CLARIFYING_QUESTION,
                    delay_seconds=self.ask_delay_seconds
                )
            return GateDecision(action=GateAction.PASS_THROUGH)

        if stage == PersonalizationStage.AWAITING_REPLY:
            preferences = parse_game_preferences(text)
            if preferences:
                self.state.accept(preferences)
                reply = acknowledgment_for(self.state.preferences)
                logger.info(f"🎮 [PersonalizationGate] Preferences accepted: {self.state.preferences}")
            else:
                # Nothing usable in the reply: stop asking rather than ask again
                self.state.decline()
                reply = DECLINED_REPLY
                logger.info("🎮 [PersonalizationGate] Personalization declined")
            self._save()
            return GateDecision(
                action=GateAction.ACKNOWLEDGE,
                reply=reply,
                delay_seconds=self.ack_delay_seconds,
                preferences=self.state.resolved_preferences
            )

        return GateDecision(action=GateAction.PASS_THROUGH, preferences=self.state.resolved_preferences)

    def reset(self):
        """Forget everything and remove the persisted keys."""
        self.state.reset()
        for key in (PREFS_KEY, ASKED_KEY, PREFERS_KEY):
            try:
                self.storage.remove(key)
            except StorageError as e:
                logger.warning(f"⚠️ [PersonalizationGate] Failed to remove {key}: {e}")
        logger.info("🧼 [PersonalizationGate] Cleared game preferences and reset state")

    def load(self) -> PersonalizationState:
        """
        Rebuild the state from storage.

        Illegal flag combinations collapse to the nearest legal stage:
        stored games win, then an explicit decline, then the asked flag.
        """
        try:
            raw_prefs = self.storage.get(PREFS_KEY)
            asked = self.storage.get(ASKED_KEY) == "true"
            prefers = self.storage.get(PREFERS_KEY)
        except StorageError as e:
            logger.warning(f"⚠️ [PersonalizationGate] Failed to read preferences: {e}")
            return PersonalizationState()

        preferences: List[str] = []
        if raw_prefs:
            try:
                parsed = json.loads(raw_prefs)
                if isinstance(parsed, list):
                    preferences = dedupe_labels([p for p in parsed if isinstance(p, str)])
            except ValueError as e:
                logger.warning(f"⚠️ [PersonalizationGate] Ignoring corrupt preferences: {e}")

        if preferences:
            return PersonalizationState(stage=PersonalizationStage.ACCEPTED, preferences=preferences)
        if prefers == "false":
            return PersonalizationState(stage=PersonalizationStage.DECLINED)
        if asked:
            return PersonalizationState(stage=PersonalizationStage.AWAITING_REPLY)
        return PersonalizationState()

    def _save(self):
        state = self.state
        if state.stage == PersonalizationStage.ACCEPTED:
            prefers = "true"
        elif state.stage == PersonalizationStage.DECLINED:
            prefers = "false"
        else:
            prefers = ""
        try:
            self.storage.set(PREFS_KEY, json.dumps(state.preferences))
            self.storage.set(ASKED_KEY, "true" if state.asked_clarifying_question else "false")
            self.storage.set(PREFERS_KEY, prefers)
        except StorageError as e:
            logger.warning(f"⚠️ [PersonalizationGate] Failed to save preferences: {e}")
