"""
Conversation Store

Per-subject, append-only message history persisted to key-value storage.
Serializes the full sequence on every mutation and degrades to an
empty/no-op store when storage misbehaves.
"""

import json
import logging
from typing import Dict, List

from sveti_tutor.errors import StorageError
from sveti_tutor.message import Message
from sveti_tutor.storage import KeyValueStorage

logger = logging.getLogger(__name__)

MESSAGES_KEY_PREFIX = "sveti-messages-"


def storage_key(subject: str) -> str:
    """Storage key holding one subject's conversation."""
    return f"{MESSAGES_KEY_PREFIX}{subject}"


class ConversationStore:
    """
    Holds one ordered list of Message per subject.

    Every mutation writes the whole sequence back to storage before
    returning. Storage failures are logged and swallowed here so that
    callers never see them.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._conversations: Dict[str, List[Message]] = {}
        # Bumped on every load/clear so a suspended send can tell whether the
        # conversation it started with is still the one on screen.
        self._generations: Dict[str, int] = {}

    def _bump(self, subject: str) -> None:
        self._generations[subject] = self._generations.get(subject, 0) + 1

    def generation(self, subject: str) -> int:
        return self._generations.get(subject, 0)

    def subjects(self) -> List[str]:
        return list(self._conversations.keys())

    def load(self, subject: str) -> List[Message]:
        """
        Replace the in-memory sequence for subject with the persisted one.

        Returns an empty list if nothing is stored, storage is unavailable,
        or the stored data does not parse. Corrupt entries are removed.
        """
        key = storage_key(subject)
        messages: List[Message] = []

        try:
            raw = self.storage.get(key)
        except StorageError as e:
            logger.warning(f"⚠️ [ConversationStore] Failed to read messages for {subject}: {e}")
            raw = None

        if raw:
            try:
                parsed = json.loads(raw)
                if not isinstance(parsed, list):
                    raise ValueError("stored conversation is not a list")
                messages = [Message.from_dict(item) for item in parsed]
            except (ValueError, TypeError) as e:
                # json.JSONDecodeError is a ValueError
                logger.warning(f"⚠️ [ConversationStore] Discarding corrupt messages for {subject}: {e}")
                messages = []
                try:
                    self.storage.remove(key)
                except StorageError as remove_error:
                    logger.warning(f"⚠️ [ConversationStore] Could not remove corrupt entry {key}: {remove_error}")

        self._conversations[subject] = messages
        self._bump(subject)
        logger.debug(f"📚 [ConversationStore] Loaded {len(messages)} messages for {subject}")
        return list(messages)

    def messages(self, subject: str) -> List[Message]:
        """In-memory view of a subject's conversation, loading it on first use."""
        if subject not in self._conversations:
            self.load(subject)
        return list(self._conversations[subject])

    def append(self, subject: str, message: Message) -> None:
        if subject not in self._conversations:
            self.load(subject)
        self._conversations[subject].append(message)
        self._persist(subject)

    def clear(self, subject: str) -> None:
        """Empty one subject's conversation and delete its storage entry."""
        self._conversations[subject] = []
        self._bump(subject)
        try:
            self.storage.remove(storage_key(subject))
        except StorageError as e:
            logger.warning(f"⚠️ [ConversationStore] Failed to clear messages for {subject}: {e}")
        logger.info(f"🧹 [ConversationStore] Cleared conversation for {subject}")

    def _persist(self, subject: str) -> None:
        messages = self._conversations.get(subject, [])
        payload = json.dumps([msg.to_dict() for msg in messages], ensure_ascii=False)
        try:
            self.storage.set(storage_key(subject), payload)
        except StorageError as e:
            logger.warning(f"⚠️ [ConversationStore] Failed to save messages for {subject}: {e}")
