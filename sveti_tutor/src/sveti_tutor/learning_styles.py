"""
Learning Style Configurations

Personalizes the teaching approach based on the student's preferred
learning modality. Styles change phrasing, never factual content.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, Optional


class LearningStyle(Enum):
    VISUAL = "visual"
    READING = "reading"
    EXAMPLES = "examples"
    SOCRATIC = "socratic"
    ANALOGIES = "analogies"


DEFAULT_LEARNING_STYLE = LearningStyle.VISUAL


@dataclass(frozen=True)
class LearningStyleConfig:
    id: str
    name: str
    description: str
    prompt_modifier: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


LEARNING_STYLES: Dict[LearningStyle, LearningStyleConfig] = {
    LearningStyle.VISUAL: LearningStyleConfig(
        id="visual",
        name="Visual",
        description="Structured steps, tables, and clear formatting",
        prompt_modifier=(
            "Use a VISUAL learning approach: Create clear step-by-step numbered layouts. "
            "Use tables and structured formatting. Organize information spatially with clear sections and headers. "
            "Use markdown to create visual hierarchy. Break complex ideas into distinct, numbered steps with clear spacing. "
            "Make the text layout itself visual and easy to scan."
        ),
    ),
    LearningStyle.READING: LearningStyleConfig(
        id="reading",
        name="Reading",
        description="Detailed written explanations",
        prompt_modifier=(
            "Use a READING/WRITING learning approach: Provide detailed, comprehensive written explanations. "
            "Use formal academic language with well-structured paragraphs. Include clear definitions and thorough descriptions. "
            "Write in a style optimized for careful reading and note-taking. Be comprehensive and detailed in your explanations."
        ),
    ),
    LearningStyle.EXAMPLES: LearningStyleConfig(
        id="examples",
        name="Examples",
        description="Multiple worked examples",
        prompt_modifier=(
            "Use an EXAMPLE-BASED learning approach: Teach primarily through concrete, worked examples. "
            "Show 2-3 complete examples with detailed solutions. Demonstrate the process first, then provide similar practice problems. "
            "Focus on \"learning by doing\" through multiple demonstrations before having the student try."
        ),
    ),
    LearningStyle.SOCRATIC: LearningStyleConfig(
        id="socratic",
        name="Socratic",
        description="Guided questions and discovery",
        prompt_modifier=(
            "Use the SOCRATIC METHOD: Guide the student through thoughtful questions. "
            "Never give direct answers - instead ask questions that lead them to discover the solution themselves. "
            "Help them think through problems by asking \"What do you think happens if...?\" and \"Why do you think that is?\" "
            "Guide discovery through inquiry."
        ),
    ),
    LearningStyle.ANALOGIES: LearningStyleConfig(
        id="analogies",
        name="Stories",
        description="Real-world analogies and metaphors",
        prompt_modifier=(
            "Use an ANALOGY/STORY approach: Explain concepts using real-world analogies, metaphors, and relatable stories. "
            "Connect abstract ideas to everyday experiences. Make concepts concrete through creative comparisons. "
            "Use \"It's like when you...\" style explanations. Tell stories that illustrate the concept."
        ),
    ),
}


def parse_learning_style(value: Optional[str]) -> Optional[LearningStyle]:
    """Return the matching LearningStyle, or None if value is not one."""
    if isinstance(value, LearningStyle):
        return value
    if not value:
        return None
    try:
        return LearningStyle(value.strip().lower())
    except ValueError:
        return None


def get_learning_style_prompt(style) -> str:
    """Prompt modifier for a style; unknown styles get the visual modifier."""
    parsed = parse_learning_style(style) or DEFAULT_LEARNING_STYLE
    return LEARNING_STYLES[parsed].prompt_modifier


def get_all_styles() -> List[LearningStyleConfig]:
    return list(LEARNING_STYLES.values())
