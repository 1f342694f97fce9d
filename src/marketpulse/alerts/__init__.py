"""Price alert evaluation."""

from .evaluator import AlertEvaluator

__all__ = ["AlertEvaluator"]
