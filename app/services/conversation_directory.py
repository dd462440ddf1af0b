"""Conversation directory: maps a user to the conversation the bot can reach.

References are stored twice, under the directory identity and under the
lower-cased email, so a proactive sender can find the conversation with
whichever key it has. Upserts never raise; a failed write is logged and the
inbound flow carries on.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.config.logger import app_logger
from app.db.json_store import JsonCollection
from app.models.conversation_reference import ConversationReference


def empty_directory() -> Dict[str, Any]:
    return {"byIdentity": {}, "byEmail": {}}


def _key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


class ConversationDirectory:
    """File-backed directory of ConversationReferences."""

    def __init__(self, collection: JsonCollection):
        self._collection = collection

    def _read(self) -> Dict[str, Dict[str, Any]]:
        data = self._collection.read()
        by_identity = data.get("byIdentity")
        by_email = data.get("byEmail")
        return {
            "byIdentity": by_identity if isinstance(by_identity, dict) else {},
            "byEmail": by_email if isinstance(by_email, dict) else {},
        }

    @staticmethod
    def _parse(raw: Any) -> Optional[ConversationReference]:
        if not isinstance(raw, dict):
            return None
        try:
            return ConversationReference.model_validate(raw)
        except ValidationError:
            return None

    def upsert(
        self,
        conversation_id: str,
        identity: Optional[str] = None,
        email: Optional[str] = None,
        channel_endpoint: Optional[str] = None,
        user_label: Optional[str] = None,
    ) -> Optional[ConversationReference]:
        """Store a fresh reference under the identity and/or email key.

        A later upsert for the same key replaces the earlier snapshot whole.

        Returns:
            The stored reference, or None when nothing was written.
        """
        identity_key = _key(identity)
        email_key = _key(email)
        if not conversation_id or not (identity_key or email_key):
            return None

        ref = ConversationReference(
            conversation_id=conversation_id,
            channel_endpoint=channel_endpoint,
            user_label=user_label,
            email=email_key,
        )
        try:
            with self._collection.locked():
                data = self._read()
                if identity_key:
                    data["byIdentity"][identity_key] = ref.to_storage()
                if email_key:
                    data["byEmail"][email_key] = ref.to_storage()
                self._collection.write(data)
        except Exception as e:
            app_logger.warning(
                f"Conversation directory upsert failed for identity={identity_key} email={email_key}: {e}"
            )
            return None

        app_logger.debug(
            f"Conversation directory upsert ok: identity={identity_key} email={email_key} conversation={conversation_id}"
        )
        return ref

    def get_by_identity(self, identity: Optional[str]) -> Optional[ConversationReference]:
        key = _key(identity)
        if not key:
            return None
        return self._parse(self._read()["byIdentity"].get(key))

    def get_by_email(self, email: Optional[str]) -> Optional[ConversationReference]:
        key = _key(email)
        if not key:
            return None
        return self._parse(self._read()["byEmail"].get(key))

    def find_reference_for(
        self, identity: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[ConversationReference]:
        """Reference for a user, trying the identity key before the email key."""
        data = self._read()
        identity_key = _key(identity)
        if identity_key:
            ref = self._parse(data["byIdentity"].get(identity_key))
            if ref and ref.conversation_id:
                return ref
        email_key = _key(email)
        if email_key:
            ref = self._parse(data["byEmail"].get(email_key))
            if ref and ref.conversation_id:
                return ref
        return None

    def find_conversation_for(
        self, identity: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[str]:
        ref = self.find_reference_for(identity=identity, email=email)
        return ref.conversation_id if ref else None

    def endpoint_for_conversation(self, conversation_id: str) -> Optional[str]:
        """Most recently stored channel endpoint for a conversation id."""
        data = self._read()
        latest: Optional[ConversationReference] = None
        for index in ("byIdentity", "byEmail"):
            for raw in data[index].values():
                ref = self._parse(raw)
                if ref is None or ref.conversation_id != conversation_id or not ref.channel_endpoint:
                    continue
                if latest is None or ref.updated_at > latest.updated_at:
                    latest = ref
        return latest.channel_endpoint if latest else None
