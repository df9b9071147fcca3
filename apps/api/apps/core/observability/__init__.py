"""
Observability package for the clinic backend.

Structured logging, Prometheus metrics, OpenTelemetry spans and health
checks, with PHI/PII redaction in every log line.
"""
from .metrics import metrics
from .events import log_domain_event
from .logging import get_sanitized_logger

__all__ = ['metrics', 'log_domain_event', 'get_sanitized_logger']
