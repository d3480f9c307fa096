import json
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from quotawatch.history import JsonHistoryStore, daily_sample
from quotawatch.models import DailyUsage, ProviderIdentifier, QuotaBased, UsageHistory
from quotawatch.predictor import UsagePredictor

NOW = datetime(2026, 3, 24, 23, 0, tzinfo=timezone.utc)


class TestJsonHistoryStore:
    def test_missing_file_is_empty(self, tmp_path: "Path") -> "None":
        store = JsonHistoryStore(tmp_path / "history")

        assert store.load(ProviderIdentifier.COPILOT, now=NOW).days == []

    def test_append_keeps_newest_first(self, tmp_path: "Path") -> "None":
        store = JsonHistoryStore(tmp_path)
        store.append(ProviderIdentifier.COPILOT, DailyUsage(date(2026, 3, 22), 10), now=NOW)
        store.append(ProviderIdentifier.COPILOT, DailyUsage(date(2026, 3, 24), 30), now=NOW)
        store.append(ProviderIdentifier.COPILOT, DailyUsage(date(2026, 3, 23), 20), now=NOW)

        history = store.load(ProviderIdentifier.COPILOT, now=NOW)

        assert [d.date.day for d in history.days] == [24, 23, 22]
        assert history.fetched_at == NOW
        assert (tmp_path / "copilot.json").exists()

    def test_same_day_is_replaced(self, tmp_path: "Path") -> "None":
        store = JsonHistoryStore(tmp_path)
        store.append(ProviderIdentifier.NANOGPT, DailyUsage(date(2026, 3, 24), 5), now=NOW)
        store.append(ProviderIdentifier.NANOGPT, DailyUsage(date(2026, 3, 24), 9), now=NOW)

        history = store.load(ProviderIdentifier.NANOGPT, now=NOW)

        assert history.days == [DailyUsage(date(2026, 3, 24), 9)]

    def test_trims_to_current_month(self, tmp_path: "Path") -> "None":
        store = JsonHistoryStore(tmp_path)
        february = datetime(2026, 2, 28, 22, tzinfo=timezone.utc)
        store.append(ProviderIdentifier.COPILOT, DailyUsage(date(2026, 2, 28), 50), now=february)
        store.append(ProviderIdentifier.COPILOT, DailyUsage(date(2026, 3, 1), 5), now=NOW)

        history = store.load(ProviderIdentifier.COPILOT, now=NOW)

        assert [d.date for d in history.days] == [date(2026, 3, 1)]

    def test_load_after_month_rollover_hides_previous_month(
        self, tmp_path: "Path"
    ) -> "None":
        store = JsonHistoryStore(tmp_path)
        september = datetime(2026, 9, 30, 23, tzinfo=timezone.utc)
        for day in range(24, 31):
            store.append(
                ProviderIdentifier.COPILOT, DailyUsage(date(2026, 9, day), 100), now=september
            )
        october = datetime(2026, 10, 1, 8, tzinfo=timezone.utc)

        history = store.load(ProviderIdentifier.COPILOT, now=october)
        prediction = UsagePredictor().predict(history, 300, today=date(2026, 10, 1))

        assert history.days == []
        assert prediction.predicted_billed_amount == 0.0
        assert prediction.days_used_for_prediction == 0
        # still on disk until the next append trims it
        assert len(store.load(ProviderIdentifier.COPILOT, now=september).days) == 7

    def test_sample_outside_period_is_dropped(self, tmp_path: "Path") -> "None":
        store = JsonHistoryStore(tmp_path)
        store.append(ProviderIdentifier.COPILOT, DailyUsage(date(2026, 2, 27), 50), now=NOW)

        assert store.load(ProviderIdentifier.COPILOT, now=NOW).days == []

    def test_providers_are_kept_apart(self, tmp_path: "Path") -> "None":
        store = JsonHistoryStore(tmp_path)
        store.append(ProviderIdentifier.COPILOT, DailyUsage(date(2026, 3, 24), 1), now=NOW)

        assert store.load(ProviderIdentifier.ZAI_CODING_PLAN, now=NOW).days == []

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"days": []}'])
    def test_corrupt_file_is_empty(self, tmp_path: "Path", content: "str") -> "None":
        (tmp_path / "copilot.json").write_text(content, encoding="utf-8")
        store = JsonHistoryStore(tmp_path)

        assert store.load(ProviderIdentifier.COPILOT, now=NOW).days == []

    def test_file_format(self, tmp_path: "Path") -> "None":
        store = JsonHistoryStore(tmp_path)
        store.append(
            ProviderIdentifier.COPILOT,
            DailyUsage(date(2026, 3, 24), 12, billed_requests=3, gross_amount=0.6, billed_amount=0.12),
            now=NOW,
        )

        data = json.loads((tmp_path / "copilot.json").read_text(encoding="utf-8"))

        assert data["fetchedAt"] == "2026-03-24T23:00:00+00:00"
        assert data["days"] == [
            {
                "date": "2026-03-24",
                "includedRequests": 12,
                "billedRequests": 3,
                "grossAmount": 0.6,
                "billedAmount": 0.12,
            }
        ]


class TestDailySample:
    def test_first_day_of_month_takes_whole_snapshot(self) -> "None":
        history = UsageHistory(fetched_at=NOW, days=[])

        day = daily_sample(history, QuotaBased(remaining=200, entitlement=300), date(2026, 3, 1))

        assert day == DailyUsage(date(2026, 3, 1), included_requests=100.0)

    def test_subtracts_earlier_days(self) -> "None":
        history = UsageHistory(
            fetched_at=NOW,
            days=[
                DailyUsage(date(2026, 3, 23), 40),
                DailyUsage(date(2026, 3, 22), 50),
                # previous month and today's own earlier sample are ignored
                DailyUsage(date(2026, 2, 28), 999),
                DailyUsage(date(2026, 3, 24), 7),
            ],
        )

        day = daily_sample(history, QuotaBased(remaining=180, entitlement=300), date(2026, 3, 24))

        assert day.included_requests == 30.0
        assert day.billed_requests == 0.0

    def test_overage_is_billed(self) -> "None":
        history = UsageHistory(
            fetched_at=NOW,
            days=[DailyUsage(date(2026, 3, 23), 300, billed_requests=10)],
        )
        usage = QuotaBased(remaining=-25, entitlement=300, overage_permitted=True)

        day = daily_sample(history, usage, date(2026, 3, 24), overage_rate=0.04)

        assert day.included_requests == 0.0
        assert day.billed_requests == 15.0
        assert day.billed_amount == pytest.approx(0.6)
        assert day.gross_amount == pytest.approx(0.6)

    def test_never_negative(self) -> "None":
        history = UsageHistory(
            fetched_at=NOW, days=[DailyUsage(date(2026, 3, 23), 250)]
        )

        day = daily_sample(history, QuotaBased(remaining=200, entitlement=300), date(2026, 3, 24))

        assert day.included_requests == 0.0
