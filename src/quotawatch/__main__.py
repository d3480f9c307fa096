import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog
from prometheus_client import CollectorRegistry, write_to_textfile

from quotawatch.cli import parse_args
from quotawatch.config import Config
from quotawatch.credentials import EnvCredentialStore
from quotawatch.errors import ProviderError
from quotawatch.history import JsonHistoryStore, daily_sample
from quotawatch.logging import setup_logging
from quotawatch.manager import ProviderManager, default_providers
from quotawatch.metrics import MetricsUpdater
from quotawatch.models import ProviderIdentifier, QuotaBased
from quotawatch.predictor import UsagePredictor
from quotawatch.serialization import encode_outcome, encode_prediction

logger = structlog.get_logger()


def _print_json(data: "Any") -> "None":
    print(json.dumps(data, indent=2, sort_keys=True))


async def _status(
    manager: "ProviderManager",
    metrics: "MetricsUpdater",
    textfile: "str | None",
) -> "int":
    outcome = await manager.fetch_all()

    alerts = sorted(
        manager.get_quota_alerts(outcome.results),
        key=lambda alert: alert[0].display_name,
    )
    payload = encode_outcome(outcome)
    payload["totalOverageCost"] = manager.calculate_total_overage_cost(outcome.results)
    payload["quotaAlerts"] = [
        {"provider": identifier.value, "remainingPercentage": remaining}
        for identifier, remaining in alerts
    ]
    _print_json(payload)

    if textfile:
        write_to_textfile(textfile, metrics.registry)
        logger.info("metrics_textfile_written", path=textfile)

    if outcome.attempted and not outcome.results:
        return 1
    return 0


async def _record(
    manager: "ProviderManager",
    store: "JsonHistoryStore",
    config: "Config",
) -> "int":
    outcome = await manager.fetch_all()
    today = datetime.now(timezone.utc).date()

    recorded: "list[str]" = []
    for identifier, result in outcome.results.items():
        if not isinstance(result.usage, QuotaBased):
            continue
        # the store does blocking file I/O under a lock
        history = await asyncio.to_thread(store.load, identifier)
        sample = daily_sample(
            history,
            result.usage,
            today,
            config.overage_rate(identifier),
        )
        await asyncio.to_thread(store.append, identifier, sample)
        recorded.append(identifier.value)

    _print_json({"date": today.isoformat(), "recorded": sorted(recorded)})
    return 0 if recorded or not outcome.attempted else 1


async def _predict(
    manager: "ProviderManager",
    store: "JsonHistoryStore",
    config: "Config",
    identifier: "ProviderIdentifier",
    entitlement: "float | None",
) -> "int":
    if entitlement is None:
        provider = manager.get_provider(identifier)
        if provider is None:
            print(f"Error: provider {identifier.value} is not available", file=sys.stderr)
            return 1
        try:
            result = await provider.fetch()
        except ProviderError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        if not isinstance(result.usage, QuotaBased):
            print(
                f"Error: {identifier.display_name} has no entitlement; pass --entitlement",
                file=sys.stderr,
            )
            return 1
        entitlement = float(result.usage.entitlement)

    history = await asyncio.to_thread(store.load, identifier)
    prediction = UsagePredictor(config.cost_per_request).predict(history, entitlement)
    payload = encode_prediction(prediction)
    payload["provider"] = identifier.value
    payload["confidenceLabel"] = prediction.confidence_level.label
    _print_json(payload)
    return 0


async def _run(config: "Config", args: "argparse.Namespace") -> "int":
    credentials = EnvCredentialStore(config)
    store = JsonHistoryStore(config.history_dir)
    metrics = MetricsUpdater(registry=CollectorRegistry())

    async with httpx.AsyncClient(timeout=config.http_timeout) as client:
        manager = ProviderManager(
            default_providers(client, credentials),
            credentials,
            overage_rates=config.overage_rates,
            metrics=metrics,
        )

        if args.command == "list":
            _print_json(
                [
                    {
                        "id": identifier.value,
                        "name": identifier.display_name,
                        "configured": identifier in credentials.configured,
                    }
                    for identifier in sorted(
                        ProviderIdentifier, key=lambda i: i.display_name
                    )
                ]
            )
            return 0

        if not credentials.configured:
            print(
                "Error: no providers configured. Set GITHUB_COPILOT_TOKEN, "
                "OPENAI_ACCESS_TOKEN and CHATGPT_ACCOUNT_ID, OPENROUTER_API_KEY, "
                "NANOGPT_API_KEY or ZAI_API_KEY.",
                file=sys.stderr,
            )
            return 1

        if args.command == "record":
            return await _record(manager, store, config)
        if args.command == "predict":
            return await _predict(
                manager, store, config, args.provider, args.entitlement
            )
        return await _status(manager, metrics, args.metrics_textfile)


def main() -> "None":
    config, args = parse_args()
    setup_logging(config.log_level, config.log_format)
    raise SystemExit(asyncio.run(_run(config, args)))


if __name__ == "__main__":
    main()
