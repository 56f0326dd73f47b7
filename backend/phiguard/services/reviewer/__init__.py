from .adapter import ReviewerAdapter, ReviewerOutcome, parse_review

__all__ = ["ReviewerAdapter", "ReviewerOutcome", "parse_review"]
