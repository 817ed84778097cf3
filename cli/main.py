import argparse
import json
import logging
import sys

from core.config import settings
from pipeline.orchestrator import Orchestrator
from pipeline.scanner import Scanner


def _print(obj):
    print(json.dumps(obj, indent=2, default=str))


def cmd_scan(args):
    scanner = Scanner(concurrency=args.concurrency, connect_timeout_s=args.connect_timeout)
    orch = Orchestrator(scanner=scanner)
    res = orch.scan(args.iprange, args.ports)
    _print(res["results"])
    return 0


def cmd_report(args):
    orch = Orchestrator()
    _print(orch.report(args.host))
    return 0


def cmd_verify(args):
    orch = Orchestrator()
    _print(orch.verify())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TCP range scanner with banner identification")
    sub = parser.add_subparsers()

    p_scan = sub.add_parser("scan", help="Connect scan + banner grab")
    p_scan.add_argument("--iprange", required=True, help="IP range to scan (e.g. 192.168.0.1 or 192.168.0.1-192.168.1.24)")
    p_scan.add_argument("--ports", required=True, help="Port range to scan (e.g. 80-100)")
    p_scan.add_argument("--concurrency", type=int, default=None, help=f"connect probes in flight (default: {settings.concurrency})")
    p_scan.add_argument("--connect-timeout", type=float, default=None, help=f"connect timeout seconds (default: {settings.connect_timeout_s})")
    p_scan.set_defaults(func=cmd_scan)

    p_report = sub.add_parser("report", help="List cached/indexed host results")
    p_report.add_argument("host", nargs="?")
    p_report.set_defaults(func=cmd_report)

    p_verify = sub.add_parser("verify", help="Config + ES connectivity check")
    p_verify.set_defaults(func=cmd_verify)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s", stream=sys.stderr)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    try:
        return args.func(args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
