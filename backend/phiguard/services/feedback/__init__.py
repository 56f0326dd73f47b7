from .publisher import FeedbackPublisher, review_action
from .report import render_report

__all__ = ["FeedbackPublisher", "render_report", "review_action"]
