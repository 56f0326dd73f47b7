from .engine import Scanner, scan
from .rules import DEFAULT_RULESET, Ruleset, load_ruleset

__all__ = ["DEFAULT_RULESET", "Ruleset", "Scanner", "load_ruleset", "scan"]
