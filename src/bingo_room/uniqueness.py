from __future__ import annotations

import hashlib
import json
from typing import Iterable, List, Sequence

from .models import Card


def card_hash(card: Card) -> str:
    """Fingerprint of a card's layout; ids and play state are not part of it."""
    payload = json.dumps(
        {"format": card.format.value, "cells": list(card.cells)},
        ensure_ascii=True,
        separators=(",", ":"),
    )
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def cards_hash(cards: Iterable[Card]) -> str:
    hashes = [card_hash(c) for c in cards]
    payload = json.dumps(hashes, ensure_ascii=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def duplicate_layouts(cards: Sequence[Card]) -> List[str]:
    """Ids of cards whose layout repeats an earlier card in the sequence."""
    seen = set()
    dupes: List[str] = []
    for card in cards:
        h = card_hash(card)
        if h in seen:
            dupes.append(card.id)
        seen.add(h)
    return dupes
