"""
Personalization State Management

Explicit state structure and transitions for the "favorite game" flow.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from sveti_tutor.errors import InvalidTransitionError

MAX_PREFERENCES = 2


class PersonalizationStage(Enum):
    """Personalization stages."""
    NOT_ASKED = "not_asked"
    AWAITING_REPLY = "awaiting_reply"  # Clarifying question shown, reply pending
    ACCEPTED = "accepted"
    DECLINED = "declined"


class PreferenceStatus(Enum):
    UNKNOWN = "unknown"
    DECLINED = "declined"
    ACCEPTED = "accepted"


@dataclass
class PersonalizationState:
    """
    Tagged state for the game-preference flow.

    NOT_ASKED -> AWAITING_REPLY -> ACCEPTED | DECLINED

    Preferences only exist in ACCEPTED, so "asked but accepted with no
    games" or "declined with games" cannot be represented.
    Resolved stages stay put until reset().
    """
    stage: PersonalizationStage = PersonalizationStage.NOT_ASKED
    preferences: List[str] = field(default_factory=list)

    @property
    def asked_clarifying_question(self) -> bool:
        return self.stage != PersonalizationStage.NOT_ASKED

    @property
    def preference_status(self) -> PreferenceStatus:
        if self.stage == PersonalizationStage.ACCEPTED:
            return PreferenceStatus.ACCEPTED
        if self.stage == PersonalizationStage.DECLINED:
            return PreferenceStatus.DECLINED
        return PreferenceStatus.UNKNOWN

    @property
    def resolved_preferences(self) -> List[str]:
        return list(self.preferences)

    def is_resolved(self) -> bool:
        return self.stage in (PersonalizationStage.ACCEPTED, PersonalizationStage.DECLINED)

    def mark_asked(self):
        """Transition to awaiting the student's reply."""
        if self.stage != PersonalizationStage.NOT_ASKED:
            raise InvalidTransitionError(self.stage, "ask the clarifying question")
        self.stage = PersonalizationStage.AWAITING_REPLY

    def accept(self, preferences: List[str]):
        """Transition to accepted with 1-2 preference labels."""
        if self.stage != PersonalizationStage.AWAITING_REPLY:
            raise InvalidTransitionError(self.stage, "accept preferences")
        cleaned = dedupe_labels(preferences)
        if not cleaned:
            raise ValueError("Accepting personalization needs at least one preference")
        self.stage = PersonalizationStage.ACCEPTED
        self.preferences = cleaned

    def decline(self):
        """Transition to declined."""
        if self.stage != PersonalizationStage.AWAITING_REPLY:
            raise InvalidTransitionError(self.stage, "decline personalization")
        self.stage = PersonalizationStage.DECLINED
        self.preferences = []

    def reset(self):
        """Back to the initial state (conversation cleared)."""
        self.stage = PersonalizationStage.NOT_ASKED
        self.preferences = []

    def to_summary(self) -> dict:
        return {
            "stage": self.stage.value,
            "asked_clarifying_question": self.asked_clarifying_question,
            "preference_status": self.preference_status.value,
            "preferences": self.resolved_preferences,
        }


def dedupe_labels(labels: List[str]) -> List[str]:
    """Trim, drop empties, dedupe preserving order, cap at MAX_PREFERENCES."""
    seen = []
    for label in labels or []:
        label = (label or "").strip()
        if label and label not in seen:
            seen.append(label)
    return seen[:MAX_PREFERENCES]
