"""
Observability module: structured logging and operator metrics.
"""

from s3ops.observability.logging import StructuredLogger, LogLevel, JsonFormatter, setup_logging
from s3ops.observability.metrics import OperatorMetrics

__all__ = [
    "StructuredLogger",
    "LogLevel",
    "JsonFormatter",
    "setup_logging",
    "OperatorMetrics",
]
