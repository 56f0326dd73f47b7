from .aggregator import CATEGORY_WEIGHTS, DEFAULT_THRESHOLD, aggregate, score

__all__ = ["CATEGORY_WEIGHTS", "DEFAULT_THRESHOLD", "aggregate", "score"]
