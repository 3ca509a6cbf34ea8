"""Sub-metric evaluators."""

from pkgtrust.metrics.base import MetricSpec, evaluate_metric
from pkgtrust.metrics.registry import EVALUATORS, evaluate, expected_call_cost

__all__ = ["EVALUATORS", "MetricSpec", "evaluate", "evaluate_metric", "expected_call_cost"]
