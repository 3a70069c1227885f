"""
Signal decision log: how often patterns were accepted, rejected or left
pending, and which confirmation sources blocked them.
"""

from __future__ import annotations
import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

logger = logging.getLogger("pattern_bot.analytics.filter_stats")


@dataclass(frozen=True)
class DecisionRecord:
    symbol: str
    strategy: str
    outcome: str
    direction: Optional[str]
    reason: str
    failed_sources: tuple = ()
    blocking_sources: tuple = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class FilterEffectiveness:
    total: int
    outcomes: Dict[str, int]
    by_strategy: Dict[str, Dict[str, int]]
    source_failures: Dict[str, int]
    rejections_by_source: Dict[str, int]
    recent: List[DecisionRecord]

    def acceptance_rate(self) -> float:
        return self.outcomes.get("accepted", 0) / self.total * 100.0 if self.total else 0.0


class FilterStatistics:
    """Bounded in-memory log. Oldest records are dropped past max_records."""

    def __init__(self, max_records: int = 1000):
        self._records: Deque[DecisionRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def record(self, decision) -> DecisionRecord:
        """Record a SignalDecision."""
        confirmation = decision.confirmation
        failed = tuple(c.source for c in confirmation.checks if not c.passed) if confirmation else ()
        record = DecisionRecord(
            symbol=decision.symbol,
            strategy=decision.strategy,
            outcome=decision.outcome,
            direction=decision.direction.value if decision.direction else None,
            reason=decision.reason,
            failed_sources=failed,
            blocking_sources=tuple(decision.blocking_sources),
        )
        with self._lock:
            self._records.append(record)
        return record

    def records(self) -> List[DecisionRecord]:
        with self._lock:
            return list(self._records)

    def effectiveness(self, recent: int = 10) -> Optional[FilterEffectiveness]:
        records = self.records()
        if not records:
            return None
        by_strategy: Dict[str, Counter] = {}
        failures: Counter = Counter()
        blocks: Counter = Counter()
        for r in records:
            by_strategy.setdefault(r.strategy, Counter())[r.outcome] += 1
            failures.update(r.failed_sources)
            blocks.update(r.blocking_sources)
        return FilterEffectiveness(
            total=len(records),
            outcomes=dict(Counter(r.outcome for r in records)),
            by_strategy={k: dict(v) for k, v in by_strategy.items()},
            source_failures=dict(failures),
            rejections_by_source=dict(blocks),
            recent=records[-recent:],
        )

    def log_summary(self) -> None:
        stats = self.effectiveness()
        if stats is None:
            return
        logger.info(
            "Filter stats | decisions=%d accepted=%.1f%% outcomes=%s blocked_by=%s",
            stats.total, stats.acceptance_rate(), stats.outcomes, stats.rejections_by_source,
        )
