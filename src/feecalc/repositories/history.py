"""Recent single-amount fee calculations."""

from __future__ import annotations

import json
import logging

from feecalc.calculations import FeeCalculation
from feecalc.repositories.base import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "paypal-calc-history"


class CalculationHistory:
    """Most-recent-first list of fee calculations, capped at ``limit``."""

    def __init__(self, store: KeyValueStore, *, limit: int = 10) -> None:
        self.store = store
        self.limit = limit

    def list(self) -> list[FeeCalculation]:
        raw = self.store.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            return [FeeCalculation(**entry) for entry in json.loads(raw)]
        except (TypeError, ValueError) as exc:
            logger.error("Failed to load history: %s", exc)
            return []

    def add(self, calculation: FeeCalculation) -> list[FeeCalculation]:
        entries = [calculation, *self.list()][: self.limit]
        self.store.set(HISTORY_KEY, json.dumps([e.to_dict() for e in entries]))
        return entries

    def clear(self) -> None:
        self.store.delete(HISTORY_KEY)
