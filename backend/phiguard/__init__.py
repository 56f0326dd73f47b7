"""PHI Guard - privacy auditor for pull requests touching health data."""

__version__ = "0.3.0"
