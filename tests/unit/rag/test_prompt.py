"""Tests for prompt composition and history reconstruction."""

from __future__ import annotations

from courier.db.models import Chunk, ContentType, DataSourceKind, Direction, Message
from courier.rag.prompt import (
    CATALOG_RULES,
    DOCUMENT_RULES,
    NO_CONTEXT_FALLBACK,
    build_messages,
    build_system_prompt,
    reconstruct_history,
)
from courier.rag.retriever import ScoredChunk


def _sc(text: str) -> ScoredChunk:
    return ScoredChunk(
        chunk=Chunk(owner_id="o", content_type=ContentType.PRODUCT, content_id="c", title="", text=text),
        similarity=0.0,
    )


def _turn(i: int, direction, text: str | None = "x") -> Message:
    return Message(
        message_id=f"m{i}",
        from_number="+1",
        to_number="+2",
        received_at=f"2026-01-01T00:{i:02d}:00",
        direction=direction,
        content_text=text,
    )


# ------------------------------------------------------------------
# System prompt
# ------------------------------------------------------------------

def test_default_catalog_prompt():
    prompt = build_system_prompt(DataSourceKind.CATALOG, None, [_sc("Product: Blue Mug")])
    assert prompt == (
        "You are a helpful Shopify store assistant.\n\n"
        + CATALOG_RULES
        + "\n\nCONTEXT:\nProduct: Blue Mug"
    )


def test_default_document_prompt():
    prompt = build_system_prompt(DataSourceKind.FILES, None, [_sc("a"), _sc("b")])
    assert prompt.startswith("You are a helpful WhatsApp assistant.\n\n" + DOCUMENT_RULES)
    assert prompt.endswith("\n\nCONTEXT:\na\n\nb")


def test_custom_prompt_replaces_preamble_but_keeps_rules():
    prompt = build_system_prompt(DataSourceKind.FILES, "You are Bella from Acme.", [])
    assert prompt.startswith("You are Bella from Acme.\n\n" + DOCUMENT_RULES)
    assert "helpful WhatsApp assistant" not in prompt


def test_empty_context_uses_fallback():
    prompt = build_system_prompt(DataSourceKind.CATALOG, None, [])
    assert prompt.endswith("CONTEXT:\n" + NO_CONTEXT_FALLBACK)


def test_rule_blocks_differ_by_kind():
    assert "Shopify store" in CATALOG_RULES
    assert "I don't have that information in the document" in DOCUMENT_RULES


# ------------------------------------------------------------------
# History
# ------------------------------------------------------------------

def test_history_maps_roles_in_order():
    turns = [_turn(0, Direction.INBOUND, "hi"), _turn(1, Direction.OUTBOUND, "hello")]
    assert reconstruct_history(turns) == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
    ]


def test_history_keeps_last_ten():
    turns = [
        _turn(i, Direction.INBOUND if i % 2 == 0 else Direction.OUTBOUND, f"t{i}") for i in range(20)
    ]
    history = reconstruct_history(turns, window=10)
    assert len(history) == 10
    assert [h["content"] for h in history] == [f"t{i}" for i in range(10, 20)]


def test_history_drops_empty_and_unknown_directions():
    turns = [
        _turn(0, Direction.INBOUND, ""),
        _turn(1, Direction.INBOUND, None),
        _turn(2, "status", "delivered"),
        _turn(3, Direction.OUTBOUND, "kept"),
    ]
    assert reconstruct_history(turns) == [{"role": "assistant", "content": "kept"}]


def test_history_filter_applies_before_window():
    turns = [_turn(i, Direction.INBOUND, f"t{i}") for i in range(3)] + [
        _turn(10 + i, "template", "noise") for i in range(5)
    ]
    assert [h["content"] for h in reconstruct_history(turns, window=2)] == ["t1", "t2"]


def test_history_zero_window():
    assert reconstruct_history([_turn(0, Direction.INBOUND, "hi")], window=0) == []


# ------------------------------------------------------------------
# Message list
# ------------------------------------------------------------------

def test_build_messages_layout():
    history = [{"role": "user", "content": "earlier"}]
    messages = build_messages("SYS", history, "now")
    assert messages == [
        {"role": "system", "content": "SYS"},
        {"role": "user", "content": "earlier"},
        {"role": "user", "content": "now"},
    ]
