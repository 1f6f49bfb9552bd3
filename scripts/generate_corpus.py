#!/usr/bin/env python3
"""Generate a corpus of synthetic workflows with randomized memory models.

Usage:
    python scripts/generate_corpus.py --config configs/corpus.yaml --output_dir results/corpus

Writes one WFCommons JSON file per instance plus workflowStatistics.csv
summarizing all instances into the output directory.
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

project_root = str(Path(__file__).resolve().parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from wfsynth.corpus.generator import CorpusGenerator
from wfsynth.utils import get_logger
from wfsynth.utils.config import DEFAULT_CONFIG_PATH, load_corpus_config
from wfsynth.workflows.export import JsonWorkflowSink

logger = get_logger("generate_corpus", logging.INFO)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a synthetic workflow corpus.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Corpus configuration YAML.")
    parser.add_argument("--output_dir", type=Path, default=None,
                        help="Destination directory; overrides corpus.output_dir.")
    parser.add_argument("--num_instances", type=int, default=None, help="Overrides corpus.num_instances.")
    parser.add_argument("--seed", type=int, default=None, help="Overrides corpus.seed.")
    args = parser.parse_args(argv)
    if args.num_instances is not None and args.num_instances < 1:
        parser.error("--num_instances must be >= 1.")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    config = load_corpus_config(args.config)
    overrides = {k: v for k, v in (("num_instances", args.num_instances), ("seed", args.seed)) if v is not None}
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    if overrides:
        config = dataclasses.replace(config, **overrides)

    output_dir = Path(config.output_dir or "results/corpus")
    logger.info("Writing workflows to %s", output_dir.resolve())

    generator = CorpusGenerator(config, sink=JsonWorkflowSink(output_dir))
    statistics = generator.run()
    statistics.write_csv(output_dir / "workflowStatistics.csv")
    return 0


if __name__ == "__main__":
    sys.exit(main())
