from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from domain.timeline import TimelineEvent

TIMELINE_FILENAME = "timeline.json"


def _event_payload(event: TimelineEvent) -> dict[str, object]:
    return {
        "date": event.date,
        "epoch": event.epoch,
        "event_type": str(event.event_type),
        "label": event.label,
        "sublabel": event.sublabel,
        "amount_sol": float(event.amount_sol),
        "amount_usd": float(event.amount_usd),
        "cumulative_profit_usd": float(event.cumulative_profit_usd),
        "cumulative_revenue_usd": float(event.cumulative_revenue_usd),
        "cumulative_expenses_usd": float(event.cumulative_expenses_usd),
        "is_pnl": event.is_pnl,
    }


def timeline_to_json(events: Iterable[TimelineEvent]) -> str:
    """Serialize events for embedding inside an HTML ``<script>`` block.

    ``</`` is written as ``<\\/`` so string values cannot close the block.
    """
    payload = json.dumps([_event_payload(event) for event in events])
    return payload.replace("</", "<\\/")


def write_timeline_json(path: Path, events: Iterable[TimelineEvent]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(timeline_to_json(events), encoding="utf-8")
    return path


__all__ = ["TIMELINE_FILENAME", "timeline_to_json", "write_timeline_json"]
