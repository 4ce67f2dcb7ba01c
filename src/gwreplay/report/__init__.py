from __future__ import annotations

from gwreplay.report.writer import build_report, report_path, resolve_target, write_report

__all__ = ["build_report", "report_path", "resolve_target", "write_report"]
