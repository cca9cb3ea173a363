"""Per-user Telegram chat settings used by the upload pipeline."""

from __future__ import annotations

import logging

from photofolio.core.errors import ValidationError
from photofolio.core.store import DocumentStore, utc_now_iso

logger = logging.getLogger(__name__)

REQUIRED_CHAT_FIELDS = ("id", "name", "botToken", "chatId")


def ensure_default_chat(chats: list[dict]) -> list[dict]:
    """Mark the first chat as default when none is."""
    chats = [dict(chat) for chat in chats]
    if chats and not any(chat.get("isDefault") for chat in chats):
        chats[0]["isDefault"] = True
    return chats


def select_chat(chats: list[dict], chat_id: str | None = None) -> dict | None:
    """Pick the chat uploads should go to.

    A specific *chat_id* wins (``None`` if it is unknown); otherwise the
    default chat, otherwise the first one.
    """
    if not chats:
        return None
    if chat_id:
        return next((chat for chat in chats if chat.get("id") == chat_id), None)
    return next((chat for chat in chats if chat.get("isDefault")), chats[0])


class SettingsService:
    def __init__(self, store: DocumentStore, collection: str):
        self.store = store
        self.collection = collection

    def get_chats(self, uid: str) -> list[dict]:
        doc = self.store.get(self.collection, uid)
        if not doc:
            return []
        return list(doc.get("telegramChats") or [])

    def save_chats(self, uid: str, chats: list[dict]) -> list[dict]:
        """Validate and merge the caller's Telegram chat list.

        Raises:
            ValidationError: If any chat lacks a required field.
        """
        for chat in chats:
            if not all(chat.get(field) for field in REQUIRED_CHAT_FIELDS):
                raise ValidationError("Each chat must have id, name, botToken, and chatId")

        chats = ensure_default_chat(chats)
        self.store.set(
            self.collection,
            uid,
            {"telegramChats": chats, "updatedAt": utc_now_iso()},
            merge=True,
        )
        logger.info(f"Saved {len(chats)} Telegram chats for user {uid}")
        return chats

    def resolve_chat(self, uid: str, chat_id: str | None = None) -> dict | None:
        return select_chat(self.get_chats(uid), chat_id)
