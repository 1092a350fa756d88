"""
Unit Tests for Prompt Composition

Tests subject prompts, learning-style blocks, game personalization and
the context window sent to the completion endpoint.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "sveti_tutor", "src"))

from sveti_tutor.game_templates import MathTopic, detect_topic, render_template
from sveti_tutor.learning_styles import (
    LEARNING_STYLES,
    LearningStyle,
    get_all_styles,
    get_learning_style_prompt,
    parse_learning_style,
)
from sveti_tutor.message import Message, PERSONALIZATION_ACTION
from sveti_tutor.personalization_state import PreferenceStatus
from sveti_tutor.prompt_composer import build_api_messages, compose_instructions
from sveti_tutor.prompts import (
    get_available_actions,
    get_subjects,
    get_system_prompt,
    is_valid_action,
    normalize_subject,
)


class TestSubjectPrompts:

    def test_english_is_an_alias_for_ela(self):
        assert normalize_subject("English") == "ela"
        assert get_system_prompt("english") == get_system_prompt("ela")

    def test_unknown_subject_falls_back_to_algebra(self):
        assert normalize_subject("chemistry") is None
        assert get_system_prompt("chemistry") == get_system_prompt("algebra")

    def test_known_action_appends_special_instruction(self):
        prompt = get_system_prompt("algebra", "practice")
        assert prompt.startswith(get_system_prompt("algebra"))
        assert "SPECIAL INSTRUCTION FOR THIS INTERACTION:" in prompt
        assert "practice problems" in prompt

    def test_action_from_other_subject_is_ignored(self):
        assert get_system_prompt("algebra", "outline") == get_system_prompt("algebra")

    def test_catalogue(self):
        assert get_available_actions("algebra") == ["explain", "steps", "practice", "check"]
        assert is_valid_action("ela", "brainstorm")
        assert not is_valid_action("ela", "steps")
        assert [s["id"] for s in get_subjects()] == ["algebra", "ela"]


class TestLearningStyles:

    def test_five_styles(self):
        assert [s.id for s in get_all_styles()] == ["visual", "reading", "examples", "socratic", "analogies"]

    def test_parse(self):
        assert parse_learning_style("Socratic") == LearningStyle.SOCRATIC
        assert parse_learning_style("telepathy") is None

    def test_unknown_style_uses_visual(self):
        assert get_learning_style_prompt("telepathy") == LEARNING_STYLES[LearningStyle.VISUAL].prompt_modifier


class TestGameTemplates:

    @pytest.mark.parametrize("text,topic", [
        ("What's 20% off?", MathTopic.PERCENT_CHANGE),
        ("How do discounts work?", MathTopic.PERCENT_CHANGE),
        ("Simplify the ratio 4:6", MathTopic.RATIOS),
        ("What is the slope here?", MathTopic.LINEAR_EQ),
        ("Graph y = 2x + 1", MathTopic.LINEAR_EQ),
        ("Help me with my essay", None),
        (None, None),
    ])
    def test_detect_topic(self, text, topic):
        assert detect_topic(text) == topic

    def test_percent_wins_over_ratio(self):
        assert detect_topic("percent and ratio") == MathTopic.PERCENT_CHANGE

    def test_render_template(self):
        assert render_template(MathTopic.RATIOS, "Minecraft").startswith("Use a Minecraft context")


class TestComposeInstructions:

    def test_without_personalization(self):
        text = compose_instructions("algebra", None, "visual", PreferenceStatus.UNKNOWN, [], "hello")

        assert text.startswith(get_system_prompt("algebra"))
        assert "TEACHING STYLE ADAPTATION:" in text
        assert LEARNING_STYLES[LearningStyle.VISUAL].prompt_modifier in text
        assert "PERSONALIZATION" not in text

    def test_is_pure(self):
        args = ("ela", "outline", LearningStyle.SOCRATIC, "accepted", ["Zelda"], "outline please")
        assert compose_instructions(*args) == compose_instructions(*args)

    def test_accepted_uses_first_game_and_topic_template(self):
        text = compose_instructions(
            "algebra", "explain", LearningStyle.EXAMPLES, PreferenceStatus.ACCEPTED,
            ["Minecraft", "Roblox"], "What is a percent discount?"
        )

        assert "PERSONALIZATION:\nThe student enjoys playing Minecraft." in text
        assert "Roblox" not in text
        assert render_template(MathTopic.PERCENT_CHANGE, "Minecraft") in text
        assert "SPECIAL INSTRUCTION FOR THIS INTERACTION:" in text

    def test_accepted_without_topic_has_no_template(self):
        text = compose_instructions("algebra", None, "visual", "accepted", ["Zelda"], "hi there")

        assert "The student enjoys playing Zelda." in text
        assert "marketplace" not in text

    def test_declined_never_personalizes(self):
        text = compose_instructions("algebra", None, "visual", PreferenceStatus.DECLINED, ["Zelda"], "20% off")
        assert "Zelda" not in text


class TestBuildApiMessages:

    def test_system_first_then_history(self):
        history = [Message.user("hi"), Message.assistant("hello"), Message.user("solve 2x = 4")]
        messages = build_api_messages("SYSTEM", history)

        assert messages[0] == {"role": "system", "content": "SYSTEM"}
        assert messages[1:] == [m.to_api() for m in history]

    def test_keeps_last_ten(self):
        history = [Message.user(f"q{i}") for i in range(15)]
        messages = build_api_messages("SYSTEM", history)

        assert len(messages) == 11
        assert messages[1]["content"] == "q5"
        assert messages[-1]["content"] == "q14"

    def test_personalization_messages_are_left_out(self):
        history = [
            Message.user("q1"),
            Message.assistant("Quick check: games?", action_type=PERSONALIZATION_ACTION),
            Message.user("Minecraft", action_type=PERSONALIZATION_ACTION),
            Message.assistant("Got it", action_type=PERSONALIZATION_ACTION),
            Message.user("What is 20% of 50?"),
        ]
        messages = build_api_messages("SYSTEM", history)

        assert [m["content"] for m in messages[1:]] == ["q1", "What is 20% of 50?"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
