"""CLI entrypoint for log delivery validation."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from botocore.exceptions import BotoCoreError

from .config import DESTINATIONS, ValidatorConfig
from .contracts import SinkUnavailableError, ValidatorConfigError
from .logging_utils import configure_logging
from .sinks import build_sink_reader
from .validator import DeliveryValidator

logger = logging.getLogger(__name__)

FAILURE_MARKER = "[TEST FAILURE]"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate log delivery to S3 or CloudWatch Logs")
    parser.add_argument("--profile", help="Optional YAML profile; flags override its values")
    parser.add_argument("--region", help="AWS Region")
    parser.add_argument("--bucket", help="S3 Bucket Name")
    parser.add_argument("--log-group", dest="log_group", help="CloudWatch Log Group Name")
    parser.add_argument("--prefix", help="S3 object prefix, or CloudWatch log stream name")
    parser.add_argument("--destination", choices=DESTINATIONS, help="Log destination to validate")
    parser.add_argument("--input-record", dest="input_record", type=int, help="Total input record number")
    parser.add_argument("--log-delay", dest="log_delay", help="Log delay label (reported as-is)")
    parser.add_argument("--endpoint-url", dest="endpoint_url", help="AWS endpoint override (e.g. LocalStack)")
    parser.add_argument(
        "--path-style",
        dest="path_style",
        action="store_true",
        default=None,
        help="Use path-style S3 addressing",
    )
    parser.add_argument("--local-root", dest="local_root", help="Directory of downloaded objects (destination=file)")
    parser.add_argument(
        "--max-throttle-retries",
        dest="max_throttle_retries",
        type=int,
        help="Give up after this many throttled CloudWatch calls in a row",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as one JSON object")
    parser.add_argument("--log-level", default="INFO", help="Logging level for diagnostics")
    parser.add_argument("--log-file", help="Also write diagnostics to this file")
    return parser


def _load_config(args: argparse.Namespace) -> ValidatorConfig:
    config = ValidatorConfig.load_profile(Path(args.profile)) if args.profile else ValidatorConfig()
    overrides = {
        "region": args.region,
        "bucket": args.bucket,
        "log_group": args.log_group,
        "prefix": args.prefix,
        "destination": args.destination,
        "input_record": args.input_record,
        "log_delay": args.log_delay,
        "endpoint_url": args.endpoint_url,
        "path_style": args.path_style,
        "local_root": args.local_root,
        "max_throttle_retries": args.max_throttle_retries,
    }
    return config.merged(overrides).validate()


def _fail(message: str) -> int:
    print(f"{FAILURE_MARKER} {message}", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=getattr(logging, str(args.log_level).upper(), logging.INFO), log_path=args.log_file)
    try:
        config = _load_config(args)
    except ValidatorConfigError as exc:
        return _fail(str(exc))
    try:
        reader = build_sink_reader(config)
    except (BotoCoreError, ValueError) as exc:
        return _fail(f"Unable to create new {config.destination} client: {exc}")
    logger.info("Validating destination=%s input_record=%s", config.destination, config.input_record)
    try:
        report = DeliveryValidator(reader).run(total_input=config.input_record, delay=str(config.log_delay))
    except (SinkUnavailableError, ValidatorConfigError) as exc:
        return _fail(str(exc))
    if args.json:
        print(json.dumps(report.as_dict(), sort_keys=True))
    else:
        for line in report.lines():
            print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
