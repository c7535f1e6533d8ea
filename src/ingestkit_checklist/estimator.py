"""Conservative size estimation for header+rows units.

The estimate deliberately over-counts: every row is charged one extra
character for its line separator, and a fixed overhead stands in for the
system prompt that accompanies every request.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ingestkit_checklist.config import ChecklistProcessorConfig


class SizeEstimator:
    """Estimate the serialized character cost of a chunk for a target model."""

    def __init__(self, config: ChecklistProcessorConfig) -> None:
        self._config = config

    def overhead(self, model: str | None = None) -> int:
        """Fixed per-request overhead in characters for *model*."""
        if model is not None and model in self._config.model_overhead_chars:
            return self._config.model_overhead_chars[model]
        return self._config.prompt_overhead_chars

    def estimate(
        self,
        header: str,
        rows: Sequence[str],
        model: str | None = None,
    ) -> int:
        """Return ``len(header) + sum(len(row) + 1) + overhead(model)``."""
        return len(header) + self.rows_size(rows) + self.overhead(model)

    @staticmethod
    def rows_size(rows: Sequence[str]) -> int:
        """Character cost of *rows* alone, separators included."""
        return sum(len(row) + 1 for row in rows)

    def estimate_tokens(self, chars: int) -> int:
        """Approximate token count for *chars* characters."""
        if chars <= 0:
            return 0
        return math.ceil(chars / self._config.chars_per_token)
