"""loadbench command line.

Usage:
    loadbench list
    loadbench run --scenario burst-spike --base-url http://localhost:8080
    loadbench run --file scenarios/checkout.yaml --seed 7 --output results/run.json
    loadbench cold-start --timeout 60
    loadbench serve-target --port 8080

Exit codes:
    0  run passed its thresholds
    1  pre-run health check failed, or a threshold was breached
    2  configuration or script error
"""

import argparse
import asyncio
import json
import sys

import structlog

from loadbench.config import Settings, settings
from loadbench.engine.errors import ConfigurationError, SetupFailure
from loadbench.report import default_report_path, print_summary, to_json, write_report
from loadbench.runner.coldstart import ColdStartProbe
from loadbench.runner.harness import ScenarioRunner
from loadbench.scenarios.catalog import COLD_START, SCENARIOS, get_scenario
from loadbench.scenarios.loader import load_scenario_file
from loadbench.scenarios.models import ColdStartSettings, Scenario
from loadbench.shared.logging import setup_logging
from loadbench.transport import HttpTransport

logger = structlog.get_logger()

EXIT_PASS = 0
EXIT_FAILED = 1
EXIT_SCRIPT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loadbench",
        description="Shaped synthetic load against an HTTP customer service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL.")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List built-in scenarios.")

    run = sub.add_parser("run", help="Run a load scenario.")
    source = run.add_mutually_exclusive_group(required=True)
    source.add_argument("--scenario", choices=sorted(SCENARIOS), help="Built-in scenario.")
    source.add_argument("--file", help="YAML scenario definition.")
    run.add_argument("--base-url", default=None, help="Target base URL (default: BASE_URL).")
    run.add_argument("--seed", type=int, default=None, help="Seed for reproducible traffic.")
    run.add_argument(
        "--max-duration",
        type=float,
        default=None,
        help="Wall-clock budget in seconds; the run stops early when exceeded.",
    )
    run.add_argument(
        "--phase",
        default=None,
        help="Fallback phase label for samples outside every phase window (default: PHASE).",
    )
    run.add_argument("--output", default=None, help="Write the JSON report to this path.")
    run.add_argument(
        "--no-report", action="store_true", help="Do not write a JSON report file."
    )

    cold = sub.add_parser("cold-start", help="Measure time until the target becomes healthy.")
    cold.add_argument("--base-url", default=None, help="Target base URL (default: BASE_URL).")
    cold.add_argument("--timeout", type=float, default=COLD_START.timeout_seconds)
    cold.add_argument("--poll-interval", type=float, default=COLD_START.poll_interval_seconds)
    cold.add_argument("--warmup-requests", type=int, default=COLD_START.warmup_requests)
    cold.add_argument("--output", default=None, help="Write the JSON result to this path.")

    serve = sub.add_parser("serve-target", help="Serve the reference customer API.")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--seed-customers", type=int, default=None)

    return parser


def _transport(cfg: Settings, base_url: str | None) -> HttpTransport:
    return HttpTransport(
        base_url=base_url or cfg.base_url,
        timeout_seconds=cfg.request_timeout_seconds,
        max_connections=cfg.max_connections,
        health_path=cfg.health_path,
    )


def _load_scenario(args: argparse.Namespace) -> Scenario:
    if args.file:
        return load_scenario_file(args.file)
    return get_scenario(args.scenario)


async def run_scenario(args: argparse.Namespace, cfg: Settings) -> int:
    scenario = _load_scenario(args)
    async with _transport(cfg, args.base_url) as transport:
        runner = ScenarioRunner(
            scenario,
            transport,
            seed=args.seed if args.seed is not None else cfg.seed,
            latency_ceiling_ms=cfg.latency_ceiling_ms,
            tick_seconds=cfg.tick_seconds,
            max_duration_seconds=(
                args.max_duration if args.max_duration is not None else cfg.max_duration_seconds
            ),
            external_phase=args.phase or cfg.phase,
            max_entity_id=cfg.max_entity_id,
        )
        try:
            summary = await runner.run()
        except SetupFailure as exc:
            logger.error("run_aborted", scenario=scenario.name, reason=str(exc))
            return EXIT_FAILED

    print_summary(summary)
    report = summary.to_dict()
    if args.output:
        write_report(report, args.output)
    elif not args.no_report:
        write_report(report, default_report_path(cfg.results_dir, scenario.name, summary.start_time))
    return EXIT_PASS if summary.passed else EXIT_FAILED


async def run_cold_start(args: argparse.Namespace, cfg: Settings) -> int:
    probe_settings = ColdStartSettings(
        timeout_seconds=args.timeout,
        poll_interval_seconds=args.poll_interval,
        warmup_requests=args.warmup_requests,
        warmup_interval_seconds=COLD_START.warmup_interval_seconds,
    )
    async with _transport(cfg, args.base_url) as transport:
        result = await ColdStartProbe(transport, probe_settings).run()

    data = result.to_dict()
    if args.output:
        write_report(data, args.output)
    print(to_json(data))
    return EXIT_PASS if result.passed else EXIT_FAILED


def serve_target(args: argparse.Namespace, cfg: Settings) -> int:
    import uvicorn

    from loadbench.target.app import create_app

    app = create_app(seed_customers=args.seed_customers)
    uvicorn.run(
        app,
        host=args.host or cfg.target_host,
        port=args.port or cfg.target_port,
        log_level=cfg.log_level.lower(),
    )
    return EXIT_PASS


def list_scenarios() -> int:
    for name in sorted(SCENARIOS):
        print(json.dumps(get_scenario(name).describe()))
    print(json.dumps({"name": "cold-start", "command": "loadbench cold-start"}))
    return EXIT_PASS


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = settings
    setup_logging(args.log_level or cfg.log_level, json_logs=args.log_json or cfg.log_json)

    try:
        if args.command == "list":
            return list_scenarios()
        if args.command == "run":
            return asyncio.run(run_scenario(args, cfg))
        if args.command == "cold-start":
            return asyncio.run(run_cold_start(args, cfg))
        if args.command == "serve-target":
            return serve_target(args, cfg)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR
    except OSError as exc:
        print(f"loadbench failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return EXIT_SCRIPT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
