from __future__ import annotations

import argparse
from pathlib import Path

from prompt_dedupe.datasets import ReferenceDatasetGenerator
from prompt_dedupe.stores import JsonFileRecordStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic prompt export with near-duplicates")
    parser.add_argument("--size", type=int, default=2000)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--duplicate-rate", type=float, default=0.15)
    parser.add_argument("--output", type=Path, default=Path("data/reference_prompts.json"))
    args = parser.parse_args()

    records = ReferenceDatasetGenerator(seed=args.seed).generate(
        size=args.size,
        duplicate_rate=args.duplicate_rate,
    )
    JsonFileRecordStore(args.output).write_records(records)
    print(f"Wrote {len(records)} records to {args.output}")


if __name__ == "__main__":
    main()
