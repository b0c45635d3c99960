"""Per-run accounting of recoverable document problems.

Repairs and fallbacks never log one line per occurrence. They are counted
here, with a bounded list of samples per category, and reported once when
the run finishes.
"""

import json
import logging

from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

LOG_LEVELS = ("silent", "error", "warn", "info", "debug")

RENAMED_SCHEMAS = "renamed_schemas"
BROKEN_REFS = "broken_refs"
NULL_TYPES = "null_types"
DUPLICATE_OPERATION_IDS = "duplicate_operation_ids"
UNMATCHED_GENERICS = "unmatched_generics"

CATEGORIES = (
    RENAMED_SCHEMAS,
    BROKEN_REFS,
    NULL_TYPES,
    DUPLICATE_OPERATION_IDS,
    UNMATCHED_GENERICS,
)


class WarningsCollector:
    """Counters and capped samples for one run."""

    def __init__(self, source: str = "openapi", log_level: str = "error", sample_limit: int = 10):
        if log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {log_level}")
        self.source = source
        self.log_level = log_level
        self.sample_limit = sample_limit
        self.validation = "enabled"
        self.counts = {category: 0 for category in CATEGORIES}
        self.samples: dict[str, list] = {category: [] for category in CATEGORIES}
        self._flushed = False

    def record(self, category: str, sample) -> None:
        self.counts[category] += 1
        if len(self.samples[category]) < self.sample_limit:
            self.samples[category].append(sample)

    def skip_validation(self) -> None:
        self.validation = "skipped"

    @property
    def has_issues(self) -> bool:
        return any(self.counts.values())

    def enabled_for(self, level: str) -> bool:
        """True when messages at ``level`` pass the configured threshold."""
        if self.log_level == "silent":
            return False
        return LOG_LEVELS.index(self.log_level) >= LOG_LEVELS.index(level)

    def summary(self) -> dict | None:
        """Build the summary, or None when there is nothing to report.

        A run with validation skipped always reports, even without issues.
        """
        if not self.has_issues and self.validation == "enabled":
            return None
        return {
            "validation": self.validation,
            "counts": {to_camel(k): v for k, v in self.counts.items() if v},
            "samples": {to_camel(k): list(v) for k, v in self.samples.items() if v},
        }

    def flush(self) -> dict | None:
        """Emit the summary once and return it."""
        if self._flushed:
            return None
        self._flushed = True
        summary = self.summary()
        if summary is None:
            return None
        if self.enabled_for("warn"):
            code = f"{self.source.upper()}_WARNINGS_SUMMARY"
            logger.warning(
                "[%s] Completed with warnings (%s): %s",
                self.source,
                code,
                json.dumps(summary, ensure_ascii=False, sort_keys=True),
            )
        return summary
