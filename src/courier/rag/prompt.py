"""System prompt composition and conversation history reconstruction.

The message list sent to the model is always:
  [system (prompt + rules + CONTEXT), *history (≤ window turns), user (new message)]
"""

from __future__ import annotations

from typing import Iterable, Sequence

from courier.db.models import DataSourceKind, Direction, Message
from courier.rag.retriever import ScoredChunk

CATALOG_RULES = """\
You are a helpful Shopify store assistant. Your ONLY job is to answer customer questions based strictly on the provided store data.

STRICT RULES:
- ONLY answer using information from the CONTEXT below
- Focus on products, pricing, availability, and store information
- If asked about unavailable products, inform customer politely
- Provide pricing in the store's currency format
- If information is not in the context, say you don't have that information but can help with other questions
- Be friendly, helpful, and conversational
- Detect the customer's language and respond in the same language
- Keep responses concise and appropriate for WhatsApp chat
- Format responses with line breaks for readability"""

DOCUMENT_RULES = """\
Your ONLY job is to answer questions based strictly on the provided document context.

STRICT RULES:
- ONLY answer questions using information from the CONTEXT below
- If the answer is not in the CONTEXT, say "I don't have that information in the document"
- NEVER use your general knowledge or make assumptions beyond the document
- NEVER offer to do tasks you cannot do (generate files, make calls, etc.)
- Be concise and friendly - keep responses under 300 words
- Use clear, simple language appropriate for WhatsApp chat
- Format responses with line breaks for readability"""

NO_CONTEXT_FALLBACK = "No relevant context found in the documents."

_ROLE_BY_DIRECTION = {
    Direction.INBOUND: "user",
    Direction.OUTBOUND: "assistant",
}


def rules_for(kind: DataSourceKind) -> str:
    return CATALOG_RULES if kind == DataSourceKind.CATALOG else DOCUMENT_RULES


def default_preamble(kind: DataSourceKind) -> str:
    label = "Shopify store" if kind == DataSourceKind.CATALOG else "WhatsApp"
    return f"You are a helpful {label} assistant."


def build_system_prompt(
    kind: DataSourceKind,
    custom_prompt: str | None,
    chunks: Sequence[ScoredChunk],
) -> str:
    """Compose the system message: preamble or tenant prompt, rules, then CONTEXT.

    Retrieved chunk texts are joined by blank lines; with no chunks the
    fallback sentence is used so the model is told explicitly.
    """
    head = custom_prompt if custom_prompt else default_preamble(kind)
    context = "\n\n".join(sc.text for sc in chunks)
    return f"{head}\n\n{rules_for(kind)}\n\nCONTEXT:\n{context or NO_CONTEXT_FALLBACK}"


def reconstruct_history(messages: Iterable[Message], window: int = 10) -> list[dict]:
    """Map stored turns to chat roles, keeping the last *window* usable ones.

    Turns without text or with a direction other than inbound/outbound
    (status callbacks, templates) are dropped before the window is applied.
    """
    history = [
        {"role": _ROLE_BY_DIRECTION[m.direction], "content": m.content_text}
        for m in messages
        if m.content_text and m.direction in _ROLE_BY_DIRECTION
    ]
    if window <= 0:
        return []
    return history[-window:]


def build_messages(system_prompt: str, history: list[dict], user_text: str) -> list[dict]:
    return [
        {"role": "system", "content": system_prompt},
        *history,
        {"role": "user", "content": user_text},
    ]
