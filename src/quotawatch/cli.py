import argparse
from pathlib import Path

from quotawatch.config import Config
from quotawatch.models import ProviderIdentifier


def _provider(value: "str") -> "ProviderIdentifier":
    identifier = ProviderIdentifier.lookup(value)
    if identifier is None:
        choices = ", ".join(i.value for i in ProviderIdentifier)
        raise argparse.ArgumentTypeError(
            f"unknown provider {value!r} (choose from {choices})"
        )
    return identifier


def build_parser() -> "argparse.ArgumentParser":
    parser = argparse.ArgumentParser(
        prog="quotawatch",
        description="AI coding assistant quota and spend monitor",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: warning)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )
    parser.add_argument(
        "--history.dir",
        dest="history_dir",
        default=None,
        help="Directory holding daily usage history (default: $QUOTAWATCH_HISTORY_DIR)",
    )

    commands = parser.add_subparsers(dest="command")

    status = commands.add_parser(
        "status", help="Fetch all configured providers once and print JSON"
    )
    status.add_argument(
        "--metrics.textfile",
        dest="metrics_textfile",
        default=None,
        help="Also write Prometheus metrics to this textfile",
    )

    commands.add_parser("list", help="List supported providers")
    commands.add_parser(
        "record", help="Fetch once and append today's sample to the history"
    )

    predict = commands.add_parser(
        "predict", help="Predict month-end usage for a provider from its history"
    )
    predict.add_argument("provider", type=_provider)
    predict.add_argument(
        "--entitlement",
        type=float,
        default=None,
        help="Monthly entitlement (default: fetched from the provider)",
    )
    return parser


def parse_args(
    argv: "list[str] | None" = None,
) -> "tuple[Config, argparse.Namespace]":
    args = build_parser().parse_args(argv)
    if args.command is None:
        args.command = "status"
        args.metrics_textfile = None

    config = Config.from_env()
    config.log_level = args.log_level
    config.log_format = args.log_format
    if args.history_dir:
        config.history_dir = Path(args.history_dir).expanduser()
    return config, args
