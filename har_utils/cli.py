"""Command line entry point: compare classifiers on a training table and predict the cases."""

import argparse
import json
import logging
import sys

from .config import DEFAULT_STRATEGIES, PipelineConfig
from .errors import PipelineError
from .models import STRATEGIES
from .pipeline import run_pipeline
from .report import format_summary, result_to_dict, results_to_csv
from .utils import load_table

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    defaults = PipelineConfig()
    parser = argparse.ArgumentParser(
        prog='har-compare',
        description='Select sensor features, compare classifiers and predict unlabelled cases',
    )
    parser.add_argument('training', help='CSV file with the labelled rows')
    parser.add_argument('cases', nargs='?', help='CSV file with the rows to predict')
    parser.add_argument('--label', default=defaults.label_column, help='Name of the label column')
    parser.add_argument('--id-column', default=defaults.id_column, help='Case identifier column carried into the output')
    parser.add_argument('--seed', type=int, default=defaults.random_state, help='Seed for partitioning and models')
    parser.add_argument('--n-jobs', type=int, default=defaults.n_jobs, help='Strategies trained in parallel')
    parser.add_argument('--strategies', nargs='+', default=list(DEFAULT_STRATEGIES),
                        choices=sorted(STRATEGIES), help='Classifier strategies to compare')
    parser.add_argument('--missing-threshold', type=float, default=defaults.missing_threshold)
    parser.add_argument('--cutoff', type=float, default=defaults.correlation_cutoff,
                        help='Absolute correlation above which columns are pruned')
    parser.add_argument('--nzv-rule', choices=['any', 'all'], default=defaults.nzv_rule,
                        help="Flag near-zero variance on either indicator or only on both ('any' also drops coarse readings with few distinct values)")
    parser.add_argument('--timeout', type=int, default=defaults.timeout_seconds,
                        help='Seconds a strategy may spend training')
    parser.add_argument('--json', action='store_true', help='Print the results as JSON instead of text')
    parser.add_argument('--results-csv', help='Write the per-model metrics table to this path')
    parser.add_argument('--predictions', help='Write the predicted labels to this CSV path')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    config = PipelineConfig(
        label_column=args.label,
        id_column=args.id_column,
        missing_threshold=args.missing_threshold,
        nzv_rule=args.nzv_rule,
        correlation_cutoff=args.cutoff,
        random_state=args.seed,
        strategies=tuple(args.strategies),
        n_jobs=args.n_jobs,
        timeout_seconds=args.timeout,
    )

    try:
        config.validate()
        training = load_table(args.training)
        cases = load_table(args.cases) if args.cases else None
        result = run_pipeline(training, cases, config)
    except (PipelineError, ValueError, OSError) as e:
        logger.error("Pipeline failed: %s", e)
        return 1

    if args.results_csv:
        with open(args.results_csv, 'w', newline='') as handle:
            handle.write(results_to_csv(result))
    if args.predictions:
        result.predictions.to_csv(args.predictions, index=False)

    if args.json:
        print(json.dumps(result_to_dict(result), indent=2))
    else:
        print(format_summary(result))
    return 0


if __name__ == '__main__':
    sys.exit(main())
