"""
Unit Tests for Personalization Gate

Tests when the clarifying question is asked, how replies are parsed,
and how state survives a restart.
"""

import json
import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "sveti_tutor", "src"))

from sveti_tutor.message import Message
from sveti_tutor.personalization_gate import (
    ASKED_KEY,
    CLARIFYING_QUESTION,
    DECLINED_REPLY,
    GateAction,
    PersonalizationGate,
    PREFERS_KEY,
    PREFS_KEY,
    acknowledgment_for,
    clean_label,
    is_decline,
    parse_game_preferences,
)
from sveti_tutor.personalization_state import PersonalizationStage, PreferenceStatus
from sveti_tutor.storage import InMemoryStorage


def user_turns(count):
    messages = []
    for i in range(count):
        messages.append(Message.user(f"question {i}"))
        messages.append(Message.assistant(f"answer {i}"))
    return messages


class TestReplyParsing:
    """Test suite for the free-text reply parser."""

    def test_two_games(self):
        assert parse_game_preferences("Minecraft and Roblox") == ["Minecraft", "Roblox"]

    def test_comma_separated_keeps_first_two(self):
        assert parse_game_preferences("Fortnite, Zelda, Tetris") == ["Fortnite", "Zelda"]

    def test_duplicates_collapse(self):
        assert parse_game_preferences("Zelda and Zelda") == ["Zelda"]

    @pytest.mark.parametrize("reply", ["no thanks", "Nope", "not really", "none", "nah I don't"])
    def test_negation_means_no_games(self, reply):
        assert is_decline(reply)
        assert parse_game_preferences(reply) == []

    def test_negation_is_a_whole_word(self):
        # "Nono" and "Notch" are not negations
        assert not is_decline("Nono's Adventure and Notch games")

    def test_only_separators(self):
        assert parse_game_preferences(", and ,") == []

    def test_clean_label_strips_filler(self):
        assert clean_label("I'm into Minecraft right now") == "Minecraft"
        assert clean_label("playing Roblox") == "Roblox"

    def test_clean_label_keeps_words_containing_filler(self):
        assert clean_label("Splatoon") == "Splatoon"

    def test_acknowledgment(self):
        text = acknowledgment_for(["I'm into Minecraft", "Roblox"])
        assert text == "Got it — I'll use Minecraft, Roblox for examples. Want to try a practice problem?"

    def test_acknowledgment_falls_back_to_raw_labels(self):
        assert "playing" in acknowledgment_for(["playing"])


class TestPersonalizationGate:
    """Test suite for PersonalizationGate."""

    @pytest.fixture
    def storage(self):
        return InMemoryStorage()

    @pytest.fixture
    def gate(self, storage):
        return PersonalizationGate(storage)

    def test_passes_through_before_third_user_turn(self, gate):
        history = user_turns(1) + [Message.user("second")]
        decision = gate.evaluate(history, "second")

        assert decision.action == GateAction.PASS_THROUGH
        assert not decision.intercepted
        assert gate.state.stage == PersonalizationStage.NOT_ASKED

    def test_asks_on_third_user_turn(self, gate, storage):
        history = user_turns(2) + [Message.user("third")]
        decision = gate.evaluate(history, "third")

        assert decision.action == GateAction.ASK
        assert decision.reply == CLARIFYING_QUESTION
        assert decision.delay_seconds == 1.5
        assert gate.awaiting_reply
        assert storage.get(ASKED_KEY) == "true"

    def test_accepts_games(self, gate, storage):
        gate.evaluate(user_turns(2) + [Message.user("third")], "third")
        decision = gate.evaluate([], "Minecraft and Roblox")

        assert decision.action == GateAction.ACKNOWLEDGE
        assert decision.delay_seconds == 2.0
        assert decision.preferences == ["Minecraft", "Roblox"]
        assert "Minecraft, Roblox" in decision.reply
        assert gate.state.preference_status == PreferenceStatus.ACCEPTED
        assert json.loads(storage.get(PREFS_KEY)) == ["Minecraft", "Roblox"]
        assert storage.get(PREFERS_KEY) == "true"

    def test_declines(self, gate, storage):
        gate.evaluate(user_turns(2) + [Message.user("third")], "third")
        decision = gate.evaluate([], "no thanks")

        assert decision.reply == DECLINED_REPLY
        assert decision.preferences == []
        assert gate.state.preference_status == PreferenceStatus.DECLINED
        assert storage.get(PREFERS_KEY) == "false"

    def test_empty_reply_declines(self, gate):
        gate.evaluate(user_turns(2) + [Message.user("third")], "third")
        decision = gate.evaluate([], ", ,")

        assert decision.reply == DECLINED_REPLY
        assert gate.state.stage == PersonalizationStage.DECLINED

    def test_never_asks_again_once_resolved(self, gate):
        gate.evaluate(user_turns(2) + [Message.user("third")], "third")
        gate.evaluate([], "no")

        decision = gate.evaluate(user_turns(10), "more questions")
        assert decision.action == GateAction.PASS_THROUGH

    def test_state_survives_restart(self, gate, storage):
        gate.evaluate(user_turns(2) + [Message.user("third")], "third")
        assert PersonalizationGate(storage).awaiting_reply

        gate.evaluate([], "Zelda")
        restored = PersonalizationGate(storage).state
        assert restored.stage == PersonalizationStage.ACCEPTED
        assert restored.preferences == ["Zelda"]

    def test_reset_removes_keys(self, gate, storage):
        gate.evaluate(user_turns(2) + [Message.user("third")], "third")
        gate.evaluate([], "Zelda")

        gate.reset()

        assert gate.state.stage == PersonalizationStage.NOT_ASKED
        for key in (PREFS_KEY, ASKED_KEY, PREFERS_KEY):
            assert storage.get(key) is None

    def test_inconsistent_flags_collapse(self):
        # Games win over a stale decline
        storage = InMemoryStorage({
            PREFS_KEY: json.dumps(["Minecraft"]),
            ASKED_KEY: "false",
            PREFERS_KEY: "false",
        })
        assert PersonalizationGate(storage).state.stage == PersonalizationStage.ACCEPTED

        # Declined without the asked flag is still declined
        storage = InMemoryStorage({PREFERS_KEY: "false"})
        assert PersonalizationGate(storage).state.stage == PersonalizationStage.DECLINED

        # "Accepted" with no games left to use is treated as still awaiting a reply
        storage = InMemoryStorage({PREFS_KEY: "[]", ASKED_KEY: "true", PREFERS_KEY: "true"})
        assert PersonalizationGate(storage).state.stage == PersonalizationStage.AWAITING_REPLY

    def test_corrupt_preferences_are_ignored(self):
        storage = InMemoryStorage({PREFS_KEY: "{oops", ASKED_KEY: "true"})
        assert PersonalizationGate(storage).state.stage == PersonalizationStage.AWAITING_REPLY


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
