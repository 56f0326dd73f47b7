"""
rules.py - Scanner rule vocabulary.

A Ruleset is an immutable snapshot of the patterns the deterministic scanner
applies. The built-in set can be replaced by a YAML file loaded once at
startup; either way the set carries a rules_hash over its canonical form so
that every report names the exact vocabulary it was produced with.

YAML layout:

    version: "1.1"
    rules:
      phi_identifiers: [ssn, patient, ...]   # regex fragments, case-insensitive
      logging_calls: ['println!', ...]       # regex fragments
      unsafe_marker: '\\bunsafe\\s*\\{'
      secret_identifiers: [password, ...]    # regex fragments, case-insensitive
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_PHI_IDENTIFIERS = (
    "name",
    "ssn",
    "social[ _-]?security",
    "dob",
    "date[ _-]?of[ _-]?birth",
    "diagnosis",
    "medical",
    "medical[ _-]?record",
    "mrn",
    "patient",
    "heart[ _-]?rate",
    "insurance[ _-]?id",
)

DEFAULT_LOGGING_CALLS = (
    r"\bprintln!",
    r"\beprintln!",
    r"\b(?:info|debug|warn|error|trace)!",
    r"\btracing::",
    r"\blog::",
    r"\bconsole\.(?:log|info|warn|error|debug)\(",
    r"\b(?:logger|logging|log)\.(?:debug|info|warning|warn|error|exception|critical)\(",
    r"\bprint\(",
    r"\bSystem\.out\.print",
    r"\bfmt\.Print",
)

DEFAULT_UNSAFE_MARKER = r"\bunsafe\s*\{"

DEFAULT_SECRET_IDENTIFIERS = (
    "password",
    "passwd",
    "secret",
    "api_key",
    "apikey",
    "token",
)


@dataclass(frozen=True)
class Ruleset:
    version: str
    phi_identifiers: tuple[str, ...]
    logging_calls: tuple[str, ...]
    unsafe_marker: str
    secret_identifiers: tuple[str, ...]

    def canonical(self) -> str:
        return json.dumps(
            {
                "version": self.version,
                "phi_identifiers": list(self.phi_identifiers),
                "logging_calls": list(self.logging_calls),
                "unsafe_marker": self.unsafe_marker,
                "secret_identifiers": list(self.secret_identifiers),
            },
            sort_keys=True,
            separators=(",", ":"),
        )

    @property
    def rules_hash(self) -> str:
        return hashlib.sha256(self.canonical().encode("utf-8")).hexdigest()

    def compile(self) -> "CompiledRules":
        # Letter boundaries, not \b: patient_ssn and patientId both match, username does not.
        phi = re.compile(
            r"(?<![A-Za-z])(?i:(?:%s)s?)(?![a-z])" % "|".join(self.phi_identifiers)
        )
        logging_call = re.compile("|".join(self.logging_calls))
        unsafe = re.compile(self.unsafe_marker)
        secret = re.compile(
            r"(?i)\b\w*(?:%s)\w*\s*(?::[^=\"'\n]*)?[:=]\s*[\"'][^\"'\n]+[\"']"
            % "|".join(self.secret_identifiers)
        )
        return CompiledRules(phi=phi, logging_call=logging_call, unsafe=unsafe, secret=secret)


@dataclass(frozen=True)
class CompiledRules:
    phi: re.Pattern
    logging_call: re.Pattern
    unsafe: re.Pattern
    secret: re.Pattern


DEFAULT_RULESET = Ruleset(
    version="builtin",
    phi_identifiers=DEFAULT_PHI_IDENTIFIERS,
    logging_calls=DEFAULT_LOGGING_CALLS,
    unsafe_marker=DEFAULT_UNSAFE_MARKER,
    secret_identifiers=DEFAULT_SECRET_IDENTIFIERS,
)


def _string_list(rules: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = rules.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not value or not all(isinstance(v, str) for v in value):
        raise ValueError(f"rules.{key} must be a non-empty list of strings")
    return tuple(value)


def load_ruleset(config_path: str | Path | None) -> Ruleset:
    """
    Load a Ruleset from YAML, or return the built-in set when no path is given.

    Keys missing from the file fall back to the built-in vocabulary.

    Raises:
        FileNotFoundError: The configured file does not exist.
        ValueError: The file is not a mapping, or a rule is malformed.
    """
    if config_path is None:
        logger.info("Scanner rules: built-in (hash=%s)", DEFAULT_RULESET.rules_hash[:12])
        return DEFAULT_RULESET

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Scanner rules not found: {path}")

    config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(config, dict):
        raise ValueError(f"Scanner rules are not a valid YAML mapping: {path}")
    rules = config.get("rules") or {}
    if not isinstance(rules, dict):
        raise ValueError(f"'rules' must be a mapping: {path}")

    unsafe_marker = rules.get("unsafe_marker", DEFAULT_UNSAFE_MARKER)
    if not isinstance(unsafe_marker, str) or not unsafe_marker:
        raise ValueError("rules.unsafe_marker must be a non-empty string")

    ruleset = Ruleset(
        version=str(config.get("version", "UNKNOWN")),
        phi_identifiers=_string_list(rules, "phi_identifiers", DEFAULT_PHI_IDENTIFIERS),
        logging_calls=_string_list(rules, "logging_calls", DEFAULT_LOGGING_CALLS),
        unsafe_marker=unsafe_marker,
        secret_identifiers=_string_list(rules, "secret_identifiers", DEFAULT_SECRET_IDENTIFIERS),
    )
    try:
        ruleset.compile()
    except re.error as e:
        raise ValueError(f"Invalid rule pattern in {path}: {e}") from e

    logger.info(
        "Scanner rules loaded: version=%s hash=%s",
        ruleset.version,
        ruleset.rules_hash[:12],
    )
    return ruleset
