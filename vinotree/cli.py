"""Console entry point for the wine-quality tree models."""
from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .config import DEFAULT_CONFIG, PipelineConfig
from .partitioning import REBALANCE_METHODS
from .pipeline import WineQualityPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Classify low-quality wines with a conditional inference tree and a random forest"
    )
    parser.add_argument("--red", type=Path, default=None, help="Delimited file with red wine records")
    parser.add_argument("--white", type=Path, default=None, help="Delimited file with white wine records")
    parser.add_argument("--sep", default=None, help="Field separator of the input files")
    parser.add_argument("--threshold", type=int, default=None, help="Quality at or below which a wine is low quality")
    parser.add_argument("--train-fraction", type=float, default=None, help="Share of records used for training")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for splitting, resampling and the forest")
    parser.add_argument("--trees", type=int, default=None, help="Number of trees in the random forest")
    parser.add_argument(
        "--rebalance", choices=REBALANCE_METHODS, default=None, help="Class rebalancing for the forest training set"
    )
    parser.add_argument("--cutoff", type=float, default=None, help="Probability cutoff for a positive prediction")
    parser.add_argument("--report-dir", type=Path, default=None, help="Directory for the markdown report")
    parser.add_argument("--no-report", action="store_true", help="Skip writing the markdown report")
    return parser


def config_from_args(args: argparse.Namespace, config: PipelineConfig = DEFAULT_CONFIG) -> PipelineConfig:
    paths = config.paths
    cleaning = config.cleaning
    split = config.split
    forest = config.forest
    evaluation = config.evaluation
    if args.red is not None:
        paths = replace(paths, red_wine=args.red)
    if args.white is not None:
        paths = replace(paths, white_wine=args.white)
    if args.report_dir is not None:
        paths = replace(paths, report_dir=args.report_dir)
    if args.sep is not None:
        cleaning = replace(cleaning, separator=args.sep)
    if args.threshold is not None:
        cleaning = replace(cleaning, low_quality_threshold=args.threshold)
    if args.train_fraction is not None:
        split = replace(split, train_fraction=args.train_fraction)
    if args.rebalance is not None:
        split = replace(split, rebalance=args.rebalance)
    if args.seed is not None:
        split = replace(split, random_state=args.seed)
        forest = replace(forest, random_state=args.seed)
    if args.trees is not None:
        forest = replace(forest, n_estimators=args.trees)
    if args.cutoff is not None:
        evaluation = replace(evaluation, probability_threshold=args.cutoff)
    return replace(config, paths=paths, cleaning=cleaning, split=split, forest=forest, evaluation=evaluation)


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    pipeline = WineQualityPipeline(config_from_args(args))
    result = pipeline.run(persist_report=not args.no_report)

    if pipeline.data_health is not None:
        dh = pipeline.data_health
        print(
            f"Rows after cleaning: {dh.row_count} of {dh.raw_rows} | dropped empty rows: {dh.dropped_empty_rows} | "
            f"low-quality share: {dh.low_quality_rate:.3f}"
        )
    print(f"Split: {result.split.train_rows} train / {result.split.test_rows} test")
    for evaluation in result.evaluations.values():
        metrics = evaluation.result
        print(
            "{name}: accuracy {accuracy:.3f}, kappa {kappa:.3f}, sensitivity {sens:.3f}, specificity {spec:.3f}".format(
                name=evaluation.name,
                accuracy=metrics.accuracy,
                kappa=metrics.kappa,
                sens=metrics.sensitivity,
                spec=metrics.specificity,
            )
        )
    if result.report_path is not None:
        print(f"Markdown report stored at: {result.report_path}")


if __name__ == "__main__":
    main()
