import json
import threading
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Protocol

import structlog

from quotawatch.models import DailyUsage, ProviderIdentifier, QuotaBased, UsageHistory
from quotawatch.serialization import decode_history, encode_history

logger = structlog.get_logger()


class HistoryStore(Protocol):
    """
    HistoryStore persists one sample per provider per UTC day. It is
    driven by an external scheduler, never by the fetch path.
    """

    def append(self, identifier: "ProviderIdentifier", day: "DailyUsage") -> "None": ...

    def load(
        self, identifier: "ProviderIdentifier", now: "datetime | None" = None
    ) -> "UsageHistory": ...


class JsonHistoryStore:
    """
    JsonHistoryStore: Is a thread-safe, file-backed history store
    with one JSON document per provider.

    Appending a sample for a date that is already stored replaces it,
    and samples outside the current UTC billing month are trimmed on
    every append. Days are kept newest first.
    """

    def __init__(self, directory: "Path") -> "None":
        self._directory = directory
        self._lock: "threading.Lock" = threading.Lock()

    def _path(self, identifier: "ProviderIdentifier") -> "Path":
        return self._directory / f"{identifier.value}.json"

    def load(
        self,
        identifier: "ProviderIdentifier",
        now: "datetime | None" = None,
    ) -> "UsageHistory":
        """
        returns the stored days of the current UTC billing month only.
        Days of a previous month stay on disk until the next append,
        but are never handed out.
        """
        now = now or datetime.now(timezone.utc)
        period_start = date(now.year, now.month, 1)

        with self._lock:
            history = self._read(identifier)
        return UsageHistory(
            fetched_at=history.fetched_at,
            days=[d for d in history.days if d.date >= period_start],
        )

    def append(
        self,
        identifier: "ProviderIdentifier",
        day: "DailyUsage",
        now: "datetime | None" = None,
    ) -> "None":
        now = now or datetime.now(timezone.utc)
        period_start = date(now.year, now.month, 1)

        with self._lock:
            history = self._read(identifier)
            days = {d.date: d for d in history.days if d.date >= period_start}
            if day.date >= period_start:
                days[day.date] = day
            else:
                logger.warning(
                    "history_sample_outside_period",
                    provider=identifier.value,
                    date=day.date.isoformat(),
                )

            updated = UsageHistory(
                fetched_at=now,
                days=sorted(days.values(), key=lambda d: d.date, reverse=True),
            )
            self._write(identifier, updated)

        logger.debug(
            "history_appended",
            provider=identifier.value,
            date=day.date.isoformat(),
            days=len(updated.days),
        )

    def _read(self, identifier: "ProviderIdentifier") -> "UsageHistory":
        path = self._path(identifier)
        empty = UsageHistory(fetched_at=datetime.now(timezone.utc), days=[])
        if not path.exists():
            return empty
        try:
            with open(path, "r", encoding="utf-8") as f:
                return decode_history(json.load(f))
        except (OSError, ValueError, KeyError, TypeError):
            logger.exception("history_load_failed", path=str(path))
            return empty

    def _write(self, identifier: "ProviderIdentifier", history: "UsageHistory") -> "None":
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(identifier)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(encode_history(history), f, indent=2)
        tmp_path.replace(path)


def daily_sample(
    history: "UsageHistory",
    usage: "QuotaBased",
    today: "date",
    overage_rate: "float" = 0.0,
) -> "DailyUsage":
    """
    turns a cumulative monthly quota snapshot into today's sample by
    subtracting what earlier days of the same month already account
    for.
    """
    used = usage.entitlement - usage.remaining
    included_total = min(max(used, 0), usage.entitlement)
    billed_total = usage.overage_amount

    earlier = [
        d
        for d in history.days
        if d.date < today and (d.date.year, d.date.month) == (today.year, today.month)
    ]
    included = max(0.0, included_total - sum(d.included_requests for d in earlier))
    billed = max(0.0, billed_total - sum(d.billed_requests for d in earlier))

    return DailyUsage(
        date=today,
        included_requests=float(included),
        billed_requests=float(billed),
        gross_amount=(included + billed) * overage_rate,
        billed_amount=billed * overage_rate,
    )
