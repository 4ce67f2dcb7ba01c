from __future__ import annotations

from gwreplay.analysis.compare import Regression, compare_runs

__all__ = ["Regression", "compare_runs"]
