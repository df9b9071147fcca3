"""
Prometheus metrics for the clinic backend.

All counters and histograms live on the module-level `metrics` registry so
every service increments the same collectors.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """Typed access to all application metrics."""

    def __init__(self):
        self._setup_metrics()

    def _setup_metrics(self):
        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.exceptions_total = Counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Treatment Metrics
        # ===================================================================
        self.treatments_created_total = Counter(
            'treatments_created_total',
            'Treatments inserted',
            ['source']  # batch, package
        )

        self.treatment_batch_rollback_total = Counter(
            'treatment_batch_rollback_total',
            'Treatment batch transactions rolled back',
            ['reason']
        )

        self.treatment_changes_total = Counter(
            'treatment_changes_total',
            'Treatment field changes that produced an audit event',
            ['field']  # total_cost, status
        )

        self.treatment_batch_duration_seconds = Histogram(
            'treatment_batch_duration_seconds',
            'Duration of treatment batch creation',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
        )

        # ===================================================================
        # Payment Metrics
        # ===================================================================
        self.payment_operations_total = Counter(
            'payment_operations_total',
            'Payment ledger operations',
            ['action', 'result']  # action: create|update|delete
        )

        self.payment_catalog_fallback_total = Counter(
            'payment_catalog_fallback_total',
            'Payment catalog lookups that fell back to the sentinel id',
            ['catalog']
        )

        # ===================================================================
        # Patient Event Metrics
        # ===================================================================
        self.patient_events_appended_total = Counter(
            'patient_events_appended_total',
            'Patient events appended to the ledger',
            ['event_type']
        )

        self.patient_events_append_failures_total = Counter(
            'patient_events_append_failures_total',
            'Patient event appends that failed after the primary write',
            ['event_type', 'reason']
        )

        self.patient_events_immutable_denied_total = Counter(
            'patient_events_immutable_denied_total',
            'Attempts to edit or delete a non-note event',
            ['operation']
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.treatment_batch_duration_seconds)
            def create_batch(...):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
