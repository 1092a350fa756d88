"""
Prompt Composition

Builds the system instruction that leads every completion request:
subject role (+ action instruction), learning-style block, and the optional
game personalization clause. Pure: same inputs, same text.
"""

from typing import Dict, List, Optional, Sequence

from sveti_tutor.game_templates import detect_topic, pick_game_for_context, render_template
from sveti_tutor.learning_styles import get_learning_style_prompt
from sveti_tutor.message import Message
from sveti_tutor.personalization_state import PreferenceStatus
from sveti_tutor.prompts import get_system_prompt

STYLE_DIVIDER = "━" * 30
DEFAULT_CONTEXT_MESSAGES = 10


def _style_block(learning_style) -> str:
    return (
        f"{STYLE_DIVIDER}\n"
        f"TEACHING STYLE ADAPTATION:\n"
        f"{get_learning_style_prompt(learning_style)}\n\n"
        f"Apply this teaching style to all your explanations while maintaining your educational role.\n"
        f"{STYLE_DIVIDER}"
    )


def _personalization_block(preferences: Sequence[str], latest_message_text: Optional[str]) -> Optional[str]:
    game = pick_game_for_context(list(preferences))
    if not game:
        return None

    block = (
        "PERSONALIZATION:\n"
        f"The student enjoys playing {game}. When you create examples or practice problems, "
        f"set them in the world of {game} where it fits naturally. Keep the underlying concepts and numbers accurate."
    )
    topic = detect_topic(latest_message_text)
    if topic is not None:
        block += f"\n{render_template(topic, game)}"
    return block


def compose_instructions(
    subject: str,
    action_type: Optional[str],
    learning_style,
    preference_status,
    preferences: Sequence[str],
    latest_message_text: Optional[str]
) -> str:
    """
    Args:
        subject: Subject id ("algebra", "ela"/"english")
        action_type: Optional quick-action label attached to the user's message
        learning_style: LearningStyle or its string value
        preference_status: PreferenceStatus or its string value
        preferences: Resolved game preferences (only the first is used)
        latest_message_text: The student's latest message, scanned for a math topic

    Returns:
        The system instruction text
    """
    sections = [get_system_prompt(subject, action_type), _style_block(learning_style)]

    status = preference_status.value if isinstance(preference_status, PreferenceStatus) else preference_status
    if status == PreferenceStatus.ACCEPTED.value:
        block = _personalization_block(preferences, latest_message_text)
        if block:
            sections.append(block)

    return "\n\n".join(sections)


def build_api_messages(
    instructions: str,
    history: List[Message],
    max_context_messages: int = DEFAULT_CONTEXT_MESSAGES
) -> List[Dict[str, str]]:
    """
    System message followed by the last N messages of the conversation.

    history must already contain the user's new message. Personalization
    Q&A is left out; it was handled locally and the model never sees it.
    """
    messages = [{"role": "system", "content": instructions}]
    recent = [msg for msg in history if not msg.is_personalization]
    if max_context_messages > 0:
        recent = recent[-max_context_messages:]
    else:
        recent = []
    messages.extend(msg.to_api() for msg in recent)
    return messages
