"""Auto-responder: answer one inbound message with retrieved context.

Pipeline for ``AutoResponder.respond``:
  0. already answered?        → return the stored reply, touch nothing
  1. data-source kind          → none: no_documents + not_configured
  2. tenant mapping (retried)  → prompt override + send credentials
  3. embed the inbound text
  4. retrieve (catalog store or mapped files)
  5. history: latest N turns of this conversation, last W kept
  6. compose prompt → 7. LLM → 8. send → 9. persist reply + mark inbound

Every outcome is a ``ResponseResult``; no exception escapes ``respond``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable

from courier.clients.messaging import MessageSender
from courier.config import CourierConfig
from courier.db.models import DataSourceKind, Direction, Message
from courier.db.repository import Repository, utc_now_iso
from courier.rag import prompt
from courier.rag.llm_client import ChatModel, Embedder
from courier.rag.retriever import ScoredChunk, retrieve_from_sources, retrieve_from_store
from courier.retry import with_retry

logger = logging.getLogger(__name__)

AUTO_REPLY_PREFIX = "auto_"
AUTO_REPLY_SENDER = "AI Assistant"

ERR_NO_SOURCE = "No data source mapped to this business number"
ERR_MAPPING = "Failed to fetch phone mapping details"
ERR_CREDENTIALS = (
    "No WhatsApp API credentials found. Please set credentials in the Configuration tab."
)
ERR_EMBEDDING = "Failed to generate embedding for message"
ERR_NO_STORE = "No Shopify store mapped to this business number"
ERR_NO_FILES = "No documents mapped to this business number"
ERR_NO_RESPONSE = "No response generated from LLM"


@dataclass
class ResponseResult:
    """Outcome of one ``respond`` call.

    Attributes:
        success: Reply generated, sent and recorded.
        response: Generated text (also set when sending failed).
        error: Human-readable failure reason.
        no_documents: The business address has nothing to retrieve from.
        not_configured: The business address lacks a mapping or credentials.
        sent: Whether the send call was made and succeeded (None if never attempted).
        duplicate: The inbound message had already been answered.
    """

    success: bool
    response: str | None = None
    error: str | None = None
    no_documents: bool = False
    not_configured: bool = False
    sent: bool | None = None
    duplicate: bool = False


def auto_reply_id(inbound_id: str) -> str:
    return f"{AUTO_REPLY_PREFIX}{inbound_id}"


class AutoResponder:
    """Retrieval-augmented responder for one business number at a time.

    Args:
        repo:     Open Repository (chunks, mappings, message log).
        embedder: Query embedder; must match the model used at ingest.
        chat:     Chat model used to generate the reply.
        sender:   Outbound messaging sender.
        config:   Loaded configuration (top_k, history, retry, generation).
        clock:    Returns the current time as an ISO-8601 string.
        sleep:    Injected into the mapping-read retry.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: Embedder,
        chat: ChatModel,
        sender: MessageSender,
        config: CourierConfig | None = None,
        clock: Callable[[], str] = utc_now_iso,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._chat = chat
        self._sender = sender
        self._config = config or CourierConfig()
        self._clock = clock
        self._sleep = sleep

    def respond(
        self, from_number: str, to_number: str, text: str, message_id: str
    ) -> ResponseResult:
        """Generate, send and record a reply to *message_id*.

        Args:
            from_number: Customer address (the reply recipient).
            to_number:   Business address the message was sent to.
            text:        Inbound message text.
            message_id:  Id of the inbound message in the message log.
        """
        try:
            return self._respond(from_number, to_number, text, message_id)
        except Exception as exc:
            logger.exception("Auto-response for %s failed", message_id)
            return ResponseResult(success=False, error=str(exc) or type(exc).__name__)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _respond(
        self, from_number: str, to_number: str, text: str, message_id: str
    ) -> ResponseResult:
        previous = self._already_answered(message_id)
        if previous is not None:
            return previous

        kind = self._repo.get_data_source_kind(to_number)
        if kind is None:
            logger.info("No data source mapped for business number %s", to_number)
            return ResponseResult(
                success=False, error=ERR_NO_SOURCE, no_documents=True, not_configured=True
            )

        rcfg = self._config.responder
        try:
            mappings = with_retry(
                lambda: self._repo.get_phone_mappings(to_number),
                max_attempts=rcfg.retry_attempts,
                base_delay=rcfg.retry_delay,
                retry_on=(sqlite3.Error,),
                sleep=self._sleep,
            )
        except sqlite3.Error as exc:
            logger.error("Fetching mappings for %s failed: %s", to_number, exc)
            return ResponseResult(success=False, error=ERR_MAPPING)
        if not mappings:
            return ResponseResult(success=False, error=ERR_MAPPING)

        tenant = mappings[0]
        logger.debug(
            "%d mappings for %s (intent=%s, custom prompt=%s)",
            len(mappings),
            to_number,
            tenant.intent,
            bool(tenant.system_prompt),
        )
        if not tenant.auth_token or not tenant.origin:
            logger.warning("No send credentials configured for %s", to_number)
            return ResponseResult(success=False, error=ERR_CREDENTIALS, not_configured=True)

        vector = self._embedder.embed(text)
        if vector is None:
            return ResponseResult(success=False, error=ERR_EMBEDDING)

        top_k = self._config.retrieval.top_k
        matches: list[ScoredChunk]
        if kind == DataSourceKind.CATALOG:
            store_id = self._repo.get_store_id(to_number)
            if not store_id:
                return ResponseResult(success=False, error=ERR_NO_STORE, no_documents=True)
            matches = retrieve_from_store(self._repo, vector, store_id, top_k)
        else:
            file_ids = self._repo.get_file_ids(to_number)
            if not file_ids:
                logger.info("No documents mapped for business number %s", to_number)
                return ResponseResult(success=False, error=ERR_NO_FILES, no_documents=True)
            matches = retrieve_from_sources(self._repo, vector, file_ids, top_k)
        if not matches:
            logger.info("No relevant chunks found for %s", message_id)

        turns = self._repo.get_conversation(
            from_number, to_number, limit=rcfg.history_fetch, exclude_message_id=message_id
        )
        history = prompt.reconstruct_history(turns, window=rcfg.history_window)

        system_prompt = prompt.build_system_prompt(kind, tenant.system_prompt, matches)
        messages = prompt.build_messages(system_prompt, history, text)
        logger.debug(
            "Prompt for %s: %d context chunks, %d history turns",
            message_id,
            len(matches),
            len(history),
        )

        gcfg = self._config.generation
        reply = self._chat.complete(
            messages, temperature=gcfg.temperature, max_tokens=gcfg.max_tokens
        )
        if not reply:
            return ResponseResult(success=False, error=ERR_NO_RESPONSE)

        result = self._sender.send(from_number, reply, tenant.auth_token, tenant.origin)
        if not result.success:
            logger.error("Failed to send reply to %s: %s", from_number, result.error)
            self._repo.mark_auto_response(message_id, sent=False, sent_at=self._clock())
            return ResponseResult(
                success=False,
                response=reply,
                sent=False,
                error=f"Generated response but failed to send: {result.error}",
            )

        self._record_reply(message_id, from_number, to_number, reply)
        self._repo.mark_auto_response(message_id, sent=True, sent_at=self._clock())
        logger.info("Auto-response sent to %s for %s", from_number, message_id)
        return ResponseResult(success=True, response=reply, sent=True)

    # ------------------------------------------------------------------
    # Message log
    # ------------------------------------------------------------------

    def _already_answered(self, message_id: str) -> ResponseResult | None:
        inbound = self._repo.get_message(message_id)
        if inbound is None or not inbound.auto_respond_sent:
            return None
        stored = self._repo.get_message(auto_reply_id(message_id))
        logger.info("Message %s already answered, skipping", message_id)
        return ResponseResult(
            success=True,
            response=stored.content_text if stored else None,
            sent=True,
            duplicate=True,
        )

    def _record_reply(
        self, inbound_id: str, from_number: str, to_number: str, reply: str
    ) -> None:
        reply_id = auto_reply_id(inbound_id)
        payload = {
            "messageId": reply_id,
            "channel": "whatsapp",
            "from": to_number,
            "to": from_number,
            "content": {"contentType": "text", "text": reply},
            "isAutoResponse": True,
        }
        inserted = self._repo.add_message(
            Message(
                message_id=reply_id,
                from_number=to_number,
                to_number=from_number,
                received_at=self._clock(),
                direction=Direction.OUTBOUND,
                content_text=reply,
                sender_name=AUTO_REPLY_SENDER,
                raw_payload=json.dumps(payload),
            ),
            ignore_existing=True,
        )
        if not inserted:
            logger.info("Reply %s already recorded", reply_id)
