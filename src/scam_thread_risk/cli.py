"""Command line runner for thread analysis."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys

from pydantic import ValidationError

from scam_thread_risk.core.errors import ScamThreadRiskError
from scam_thread_risk.core.log import configure_logging
from scam_thread_risk.domain.thread.models import CallChecks, ThreadTextInput
from scam_thread_risk.orchestrator.build import create_analyzer

logger = logging.getLogger(__name__)


def _read_text(args: argparse.Namespace) -> str:
    if args.text is not None:
        return str(args.text)
    if args.file:
        if args.file == "-":
            return sys.stdin.read()
        return Path(args.file).read_text(encoding="utf-8")
    return sys.stdin.read()


def run_once(args: argparse.Namespace) -> str:
    analyzer, runtime = create_analyzer(
        config_path=args.config,
        profile_override=args.profile,
        sim_index=args.sim_index,
        sem_index=args.sem_index,
    )
    configure_logging(args.log_level or analyzer.config.log_level)
    if analyzer.config.sim_index_path or analyzer.config.sem_index_path:
        asyncio.run(analyzer.load_pools())

    payload = ThreadTextInput(
        thread_text=_read_text(args),
        call_checks=CallChecks(
            otp_asked=args.otp_asked,
            remote_asked=args.remote_asked,
            urgent_pressured=args.urgent,
            first_contact=True if args.first_contact else None,
        ),
    )
    result = analyzer.analyze(payload)
    logger.debug("analysis finished risk=%s score=%s", result.risk_level, result.score_total)
    if args.package_only:
        return result.package_text
    body = result.to_payload()
    body["runtime"] = runtime
    return json.dumps(body, ensure_ascii=False, indent=2 if args.pretty else None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scam-thread-risk")
    parser.add_argument("--text", help="Thread text to analyze. Reads stdin when neither --text nor --file is given.")
    parser.add_argument("--file", help="Read the thread from a UTF-8 file ('-' for stdin).")
    parser.add_argument("--otp-asked", action="store_true", help="Caller asked for a verification code.")
    parser.add_argument("--remote-asked", action="store_true", help="Caller asked to install a remote-control app.")
    parser.add_argument("--urgent", action="store_true", help="Caller applied urgency or threats.")
    parser.add_argument("--first-contact", action="store_true", help="Unknown number or first contact.")
    parser.add_argument("--sim-index", help="Path or URL of the signal similarity pool.")
    parser.add_argument("--sem-index", help="Path or URL of the semantic embedding pool.")
    parser.add_argument("--config", help="Override the YAML config path.")
    parser.add_argument("--profile", help="Config profile, e.g. strict or realtime.")
    parser.add_argument("--log-level", help="Logging level for this run.")
    parser.add_argument("--package-only", action="store_true", help="Print only the report package text.")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        print(run_once(args))
    except ValidationError as exc:
        print(f"invalid input: {exc}", file=sys.stderr)
        return 2
    except (ScamThreadRiskError, OSError, UnicodeDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0
