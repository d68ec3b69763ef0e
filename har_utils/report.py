"""Plain-text, CSV and JSON renderings of a pipeline run."""

import csv
import io
from typing import Any, Dict

from .config import calculate_split_percentages
from .pipeline import PipelineResult
from .utils import safe_json_convert

METRIC_KEYS = ['Accuracy', 'Kappa', 'Precision', 'Recall', 'F1', 'Error_Rate', 'Training_Time']


def results_to_csv(result: PipelineResult) -> str:
    """Per-model metrics table with the selected model flagged."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['Model', 'Best_Model'] + METRIC_KEYS + ['Error'])
    for outcome in result.outcomes:
        metrics = outcome.metrics()
        is_best = 'Yes' if outcome.name == result.best_strategy else 'No'
        row = [outcome.name, is_best] + [metrics.get(key, '') for key in METRIC_KEYS]
        writer.writerow(row + [outcome.error or ''])
    return output.getvalue()


def result_to_dict(result: PipelineResult) -> Dict[str, Any]:
    payload = {
        'best_model_name': result.best_strategy,
        'partition_sizes': dict(result.partition_sizes),
        'feature_selection': dict(result.selection),
        'all_results': [
            {'model': outcome.name, 'metrics': outcome.metrics(), 'error': outcome.error}
            for outcome in result.outcomes
        ],
        'testing': {
            'metrics': result.testing.metrics(),
            'confusion_matrix': result.testing.confusion.to_frame(),
        },
        'validation': {
            'metrics': result.validation.metrics(),
            'confusion_matrix': result.validation.confusion.to_frame(),
            'per_class': result.validation.confusion.per_class(),
        },
        'out_of_sample_error': result.out_of_sample_error,
        'predictions': result.predictions,
    }
    return safe_json_convert(payload)


def format_summary(result: PipelineResult) -> str:
    """Human-readable account of what was removed, how models compared and what was predicted."""
    selection = result.selection
    sizes = result.partition_sizes
    shares = calculate_split_percentages(result.config.outer_split, result.config.inner_split)
    lines = [
        "Feature selection",
        f"  missing >= {result.config.missing_threshold:.0%}: {len(selection['missing'])} removed",
        f"  identifiers: {len(selection['identifiers'])} removed",
        f"  non-numeric: {len(selection['non_numeric'])} removed",
        f"  near-zero variance: {len(selection['near_zero_variance'])} removed",
        f"  correlated > {result.config.correlation_cutoff}: {len(selection['correlated'])} removed",
        f"  kept: {len(selection['selected'])} features",
        "",
        "Partitions",
        f"  training:   {sizes['training']:>6} rows (~{shares['training']}%)",
        f"  testing:    {sizes['testing']:>6} rows (~{shares['testing']}%)",
        f"  validation: {sizes['validation']:>6} rows (~{shares['validation']}%)",
        "",
        "Model comparison (testing subset)",
    ]
    for outcome in result.outcomes:
        marker = '*' if outcome.name == result.best_strategy else ' '
        if outcome.succeeded:
            metrics = outcome.metrics()
            lines.append(
                f" {marker} {outcome.name:<20} accuracy {metrics['Accuracy']:.4f}  "
                f"kappa {metrics['Kappa']:.4f}  time {metrics['Training_Time']:.2f}s"
            )
        else:
            lines.append(f"   {outcome.name:<20} failed: {outcome.error}")

    lines += [
        "",
        f"Selected model: {result.best_strategy}",
        f"Validation accuracy: {result.validation.accuracy:.4f}",
        f"Out-of-sample error: {result.out_of_sample_error:.4f}",
        "",
        "Validation confusion matrix",
        result.validation.confusion.to_frame().to_string(),
    ]
    if len(result.predictions):
        lines += ["", "Predictions", result.predictions.to_string(index=False)]
    return "\n".join(lines)
