from .semgrep import SemgrepRunner, reconstruct_added_lines

__all__ = ["SemgrepRunner", "reconstruct_added_lines"]
