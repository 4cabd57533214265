"""Logging configuration and operator-facing reporting."""

from .logging import ExtraFieldsFormatter, OperatorReporter, ReportLevel, configure_logging

__all__ = ["ExtraFieldsFormatter", "OperatorReporter", "ReportLevel", "configure_logging"]
