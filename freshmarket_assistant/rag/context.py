"""
Context assembly: system policy turn with the retrieved products, bounded history, current user turn.
"""

from __future__ import annotations

import logging
import re
from typing import List, Sequence

from freshmarket_assistant.config import settings
from freshmarket_assistant.models.schemas import ChatTurn, ProductRecord
from freshmarket_assistant.rag.prompts import NO_PRODUCTS_TEXT, PRODUCT_TEMPLATE, SYSTEM_PROMPT_TEMPLATE

MAX_HISTORY_TURNS = settings.max_history_turns
MAX_HISTORY_CHARS = settings.max_history_chars

_APOSTROPHE = "['‘’`ʻ]?"
_NUMBER = (
    r"(?:\d+(?:[.,]\d+)?|yarim|bir|ikki|uch"
    rf"|to{_APOSTROPHE}rt|besh|olti|yetti|sakkiz|to{_APOSTROPHE}qqiz|o{_APOSTROPHE}n)"
)
_UNIT = rf"(?:kg|kilo(?:gramm)?|gramm|gr|g|litr|l|dona|ta|quti|pachka|bog{_APOSTROPHE}|bo{_APOSTROPHE}lak)"
_TAIL = rf"(?:\s+(?:bering|kerak|olaman|olsam|qo{_APOSTROPHE}shing|bo{_APOSTROPHE}lsin))?"

QUANTITY_EXPRESSION = re.compile(rf"^\s*{_NUMBER}\s*{_UNIT}{_TAIL}\s*[.!?]*\s*$", re.IGNORECASE)

logger = logging.getLogger(__name__)


def is_quantity_expression(text: str) -> bool:
    """True for a bare amount such as "2 kg", "3 ta" or "yarim kilo bering"."""
    return bool(QUANTITY_EXPRESSION.match(text))


def last_product_turn(history: Sequence[ChatTurn]) -> ChatTurn | None:
    """Most recent user turn that is not itself a bare amount."""
    for turn in reversed(history):
        if turn.role == "user" and turn.content.strip() and not is_quantity_expression(turn.content):
            return turn
    return None


def render_products(products: Sequence[ProductRecord]) -> str:
    if not products:
        return NO_PRODUCTS_TEXT
    return "\n\n".join(
        PRODUCT_TEMPLATE.format(
            name=p.name,
            price=p.price,
            category=p.category,
            stock=p.stock,
            unit=p.unit,
            description=p.description or "-",
        )
        for p in products
    )


class ContextAssembler:
    def __init__(
        self,
        max_turns: int = MAX_HISTORY_TURNS,
        max_chars: int = MAX_HISTORY_CHARS,
        template: str = SYSTEM_PROMPT_TEMPLATE,
    ) -> None:
        self.max_turns = max_turns
        self.max_chars = max_chars
        self.template = template

    def system_turn(self, products: Sequence[ProductRecord]) -> ChatTurn:
        return ChatTurn(role="system", content=self.template.format(products=render_products(products)))

    def bound_history(self, history: Sequence[ChatTurn]) -> List[ChatTurn]:
        """
        Keep the most recent non-system turns that fit both the turn and the
        character budget; older turns are dropped first.
        """
        turns = [t for t in history if t.role != "system"]
        kept: List[ChatTurn] = []
        used = 0
        for turn in reversed(turns):
            if len(kept) >= self.max_turns or used + len(turn.content) > self.max_chars:
                break
            kept.append(turn)
            used += len(turn.content)
        kept.reverse()

        dropped = len(history) - len(kept)
        if dropped:
            logger.info(
                "History trimmed",
                extra={"received": len(history), "kept": len(kept), "dropped": dropped, "chars": used},
            )
        return kept

    def assemble(
        self,
        user_message: str,
        retrieved: Sequence[ProductRecord],
        history: Sequence[ChatTurn] = (),
    ) -> List[ChatTurn]:
        return [
            self.system_turn(retrieved),
            *self.bound_history(history),
            ChatTurn(role="user", content=user_message),
        ]


__all__ = [
    "ContextAssembler",
    "render_products",
    "is_quantity_expression",
    "last_product_turn",
    "QUANTITY_EXPRESSION",
    "MAX_HISTORY_TURNS",
    "MAX_HISTORY_CHARS",
]
