"""CLI entry point for synthetic data generators.

Usage:
    loadbench-generate customer --seed 42 --count 1000
    loadbench-generate customer --config configs/customers.yaml --output file
"""

import argparse
import json
import sys
from pathlib import Path

import yaml


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="loadbench synthetic data generators")
    parser.add_argument(
        "generator",
        choices=["customer"],
        help="Which generator to run",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility")
    parser.add_argument(
        "--count", type=int, default=1000, help="Number of primary entities to generate"
    )
    parser.add_argument(
        "--output",
        type=str,
        default="stdout",
        choices=["stdout", "file"],
        help="Output destination",
    )
    parser.add_argument("--output-file", type=str, default=None, help="Output file path")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config: dict = {}
    if args.config:
        with open(args.config) as f:
            config = yaml.safe_load(f) or {}

    from .customer_generator import CustomerDataFactory

    gen = CustomerDataFactory(config=config, seed=args.seed)
    records = gen.generate(num_customers=args.count)

    if args.output == "stdout":
        for record in records:
            print(json.dumps(record, default=str))
    else:
        output_path = args.output_file or f"output/{args.generator}_records.jsonl"
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            for record in records:
                f.write(json.dumps(record, default=str) + "\n")
        print(f"Wrote {len(records)} records to {output_path}", file=sys.stderr)

    print(f"Generated {len(records)} records", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
