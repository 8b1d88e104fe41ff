"""Report parsing and rendering."""

from clusterctl.monitoring.diagnostic_reporter import DiagnosticReporter, ReportLine, derived_warnings

__all__ = ["DiagnosticReporter", "ReportLine", "derived_warnings"]
