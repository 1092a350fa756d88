"""
Tutor configuration, read from the environment (and .env via python-dotenv).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

PLACEHOLDER_API_KEYS = {"", "sk-your-key-goes-here"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class TutorSettings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    use_mock: bool = False
    storage_backend: str = "file"  # memory | file | supabase
    storage_path: str = ".sveti/storage.json"
    kv_table: str = "kv_store"
    ask_delay_seconds: float = 1.5
    ack_delay_seconds: float = 2.0
    max_tokens: int = 800
    temperature: float = 0.7
    context_messages: int = 10
    default_subject: str = "algebra"
    default_learning_style: str = "visual"

    @property
    def has_api_key(self) -> bool:
        return (self.openai_api_key or "").strip() not in PLACEHOLDER_API_KEYS

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "TutorSettings":
        if load_env_file:
            load_dotenv()

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            use_mock=_env_bool("SVETI_USE_MOCK", False),
            storage_backend=os.getenv("SVETI_STORAGE_BACKEND", "file").strip().lower(),
            storage_path=os.getenv("SVETI_STORAGE_PATH", ".sveti/storage.json"),
            kv_table=os.getenv("SVETI_KV_TABLE", "kv_store"),
            ask_delay_seconds=_env_float("SVETI_ASK_DELAY_SECONDS", 1.5),
            ack_delay_seconds=_env_float("SVETI_ACK_DELAY_SECONDS", 2.0),
            max_tokens=_env_int("SVETI_MAX_TOKENS", 800),
            temperature=_env_float("SVETI_TEMPERATURE", 0.7),
            context_messages=_env_int("SVETI_CONTEXT_MESSAGES", 10),
            default_subject=os.getenv("SVETI_DEFAULT_SUBJECT", "algebra"),
            default_learning_style=os.getenv("SVETI_DEFAULT_LEARNING_STYLE", "visual"),
        )
