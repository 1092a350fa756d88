"""
Completion Clients

One interface, two implementations chosen when the tutor is built:
- OpenAICompletionClient: real chat completions through AsyncOpenAI
- MockCompletionClient: deterministic canned tutoring replies

complete() never raises for API failures. It returns a CompletionResult
carrying either the reply text or an error description and category.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import openai
from openai import AsyncOpenAI

from sveti_tutor.config import TutorSettings
from sveti_tutor.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
VALID_ROLES = ("system", "user", "assistant")


class ErrorCategory(Enum):
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    QUOTA = "quota"
    UNAVAILABLE = "unavailable"
    NETWORK = "network"
    UNEXPECTED = "unexpected"


@dataclass
class CompletionResult:
    content: Optional[str] = None
    error: Optional[str] = None
    category: Optional[ErrorCategory] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.content is not None

    @classmethod
    def success(cls, content: str) -> "CompletionResult":
        return cls(content=content)

    @classmethod
    def failure(cls, error: str, category: ErrorCategory = ErrorCategory.UNEXPECTED) -> "CompletionResult":
        return cls(error=error, category=category)


def validate_messages(messages: List[Dict[str, str]]) -> bool:
    """Every message must be a dict with a known role and string content."""
    if not isinstance(messages, list):
        return False
    return all(
        isinstance(msg, dict)
        and isinstance(msg.get("role"), str)
        and isinstance(msg.get("content"), str)
        and msg["role"] in VALID_ROLES
        for msg in messages
    )


def categorize_error_text(error: str) -> ErrorCategory:
    """Best-effort category for an error that only came with a description."""
    lowered = (error or "").lower()
    if "401" in lowered or "api key" in lowered or "authentication" in lowered:
        return ErrorCategory.AUTHENTICATION
    if "quota" in lowered or "402" in lowered or "billing" in lowered:
        return ErrorCategory.QUOTA
    if "429" in lowered or "rate limit" in lowered:
        return ErrorCategory.RATE_LIMIT
    if "500" in lowered or "503" in lowered or "server" in lowered or "unavailable" in lowered:
        return ErrorCategory.UNAVAILABLE
    if "network" in lowered or "connection" in lowered:
        return ErrorCategory.NETWORK
    return ErrorCategory.UNEXPECTED


class CompletionClient(ABC):

    model: str = DEFAULT_MODEL

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int = 800,
        temperature: float = 0.7
    ) -> CompletionResult:
        """Turn role-tagged messages into reply text (or an error result)."""


class OpenAICompletionClient(CompletionClient):

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, client: Optional[AsyncOpenAI] = None):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY not found in environment variables")
        self.model = model
        self.llm_client = client or AsyncOpenAI(api_key=api_key)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int = 800,
        temperature: float = 0.7
    ) -> CompletionResult:
        if not messages or not validate_messages(messages):
            return CompletionResult.failure("Messages array is required and cannot be empty.")

        try:
            response = await self.llm_client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                stream=False
            )
        except openai.AuthenticationError as e:
            logger.error(f"❌ [OpenAI] Authentication failed: {e}")
            return CompletionResult.failure(
                "Invalid OpenAI API key. Please check your API key in the .env file.",
                ErrorCategory.AUTHENTICATION
            )
        except openai.RateLimitError as e:
            # OpenAI reports an exhausted quota as a 429 with code insufficient_quota
            if getattr(e, "code", None) == "insufficient_quota":
                logger.error(f"❌ [OpenAI] Quota exceeded: {e}")
                return CompletionResult.failure(
                    "OpenAI account quota exceeded. Please check your billing settings.",
                    ErrorCategory.QUOTA
                )
            logger.warning(f"⚠️ [OpenAI] Rate limited: {e}")
            return CompletionResult.failure(
                "Rate limit exceeded. Please wait a moment before trying again.",
                ErrorCategory.RATE_LIMIT
            )
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            logger.error(f"❌ [OpenAI] Connection error: {e}")
            return CompletionResult.failure(
                "Network error. Please check your internet connection and try again.",
                ErrorCategory.NETWORK
            )
        except openai.APIStatusError as e:
            logger.error(f"❌ [OpenAI] API error (status {e.status_code}): {e}")
            if e.status_code == 402:
                return CompletionResult.failure(
                    "OpenAI account quota exceeded. Please check your billing settings.",
                    ErrorCategory.QUOTA
                )
            if e.status_code >= 500:
                return CompletionResult.failure(
                    "OpenAI service is temporarily unavailable. Please try again later.",
                    ErrorCategory.UNAVAILABLE
                )
            return CompletionResult.failure(
                "An unexpected error occurred. Please try again later.",
                categorize_error_text(str(e))
            )
        except openai.OpenAIError as e:
            logger.error(f"❌ [OpenAI] Unexpected SDK error: {e}", exc_info=True)
            return CompletionResult.failure("An unexpected error occurred. Please try again later.")

        content = None
        if response.choices:
            content = response.choices[0].message.content
        if not content:
            return CompletionResult.failure("No response content received from OpenAI.")

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(f"💰 [OpenAI] Tokens used: {usage.total_tokens}")
        return CompletionResult.success(content.strip())


class MockCompletionClient(CompletionClient):
    """
    Deterministic stand-in for the completion endpoint.

    Replies are picked by keywords in the latest user message, with a stable
    hash choosing among the generic replies. Every request is recorded in
    self.requests.
    """

    model = "mock-gpt"

    DEFAULT_RESPONSES = [
        "I'm here to help! Can you tell me more about what you're working on? The more details you share, the better I can assist you.",
        "That's a great question to explore! Let's break it down together. What specific part would you like to focus on first?",
        "I love helping students learn! Could you share more context about your assignment or what you're trying to understand?",
    ]

    def __init__(self, fail_with: Optional[ErrorCategory] = None):
        self.fail_with = fail_with
        self.requests: List[Dict] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int = 800,
        temperature: float = 0.7
    ) -> CompletionResult:
        self.requests.append({
            "messages": [dict(msg) for msg in messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
        })

        if self.fail_with is not None:
            return CompletionResult.failure(f"Mock failure: {self.fail_with.value}", self.fail_with)

        latest = next((m["content"] for m in reversed(messages) if m.get("role") == "user"), "")
        return CompletionResult.success(self.generate_response(latest))

    def generate_response(self, content: str) -> str:
        lowered = content.lower()

        if "solve" in lowered or (any(ch.isdigit() for ch in lowered) and "x" in lowered):
            return (
                "I'd be happy to help you solve this! Let's work through it step by step. "
                "First, we need to isolate the variable by performing the same operation on both sides of the equation. "
                "What operation do you think we should start with?"
            )
        if "explain" in lowered or "what is" in lowered:
            return (
                "Great question! Let me break this down for you in simple terms. "
                "Understanding the concept is more important than just memorizing formulas. "
                "Think of it this way - when we're working with equations, we're like detectives solving a mystery "
                "to find the value of our unknown variable."
            )
        if "practice" in lowered or "problems" in lowered:
            return (
                "Here are 3 practice problems for you:\n\n"
                "1. 3x + 7 = 22\n2. 2(x - 4) = 10\n3. 5x - 3 = 4x + 8\n\n"
                "Try solving these step by step! Remember to show your work, and let me know if you need help with any of them."
            )
        if "essay" in lowered or "thesis" in lowered:
            return (
                "Let's work on developing your thesis together! A strong thesis should be specific, arguable, "
                "and provide a roadmap for your essay. What's your topic? I can help you narrow it down "
                "and create a clear, focused thesis statement."
            )
        if "grammar" in lowered or "check" in lowered:
            return (
                "I'd be happy to help you check your grammar! Please share the text you'd like me to review, "
                "and I'll point out any issues and explain how to fix them. "
                "Remember, good writing is all about clear communication."
            )
        if "brainstorm" in lowered or "ideas" in lowered:
            return (
                "Brainstorming is one of my favorite parts of writing! Let's think about this together. "
                "What's your assignment about? I can help you generate ideas, organize your thoughts, "
                "and find the angle that interests you most."
            )

        digest = hashlib.md5(lowered.strip().encode()).hexdigest()
        return self.DEFAULT_RESPONSES[int(digest, 16) % len(self.DEFAULT_RESPONSES)]


def build_client(settings: TutorSettings) -> CompletionClient:
    """Pick the completion client from configuration."""
    if settings.use_mock:
        logger.info("🤖 [Completion] Using mock completion client (SVETI_USE_MOCK)")
        return MockCompletionClient()
    if not settings.has_api_key:
        logger.warning("⚠️ [Completion] OPENAI_API_KEY not configured - using mock completion client")
        return MockCompletionClient()
    logger.info(f"🤖 [Completion] Using OpenAI model {settings.openai_model}")
    return OpenAICompletionClient(api_key=settings.openai_api_key, model=settings.openai_model)
