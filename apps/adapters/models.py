"""
Audit and health models for upstream API adapters.
"""
from django.db import models
from apps.core.models import TimeStampedModel


class RawAPIResponse(TimeStampedModel):
    """
    Store raw API responses for debugging and audit trail.
    """
    source = models.CharField(max_length=50, db_index=True)
    endpoint = models.CharField(max_length=200)

    # Request details
    params = models.JSONField(default=dict)

    # Response details
    response_data = models.JSONField()
    status_code = models.IntegerField()
    response_time_ms = models.IntegerField(null=True)  # Response time in milliseconds

    # Error tracking
    is_error = models.BooleanField(default=False)
    error_message = models.TextField(blank=True)

    class Meta:
        verbose_name = 'Raw API Response'
        verbose_name_plural = 'Raw API Responses'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['source', '-created_at']),
            models.Index(fields=['is_error']),
        ]

    def __str__(self):
        return f"{self.source} - {self.endpoint} [{self.status_code}] - {self.created_at}"


class AdapterStatus(TimeStampedModel):
    """
    Request health of each upstream adapter, shown by the health endpoint.
    """
    source = models.CharField(max_length=50, unique=True, db_index=True)

    # Health metrics
    last_success_at = models.DateTimeField(null=True, blank=True)
    last_failure_at = models.DateTimeField(null=True, blank=True)
    consecutive_failures = models.IntegerField(default=0)
    total_requests = models.IntegerField(default=0)
    total_failures = models.IntegerField(default=0)

    # Status
    status_message = models.TextField(blank=True)

    class Meta:
        verbose_name = 'Adapter Status'
        verbose_name_plural = 'Adapter Statuses'
        ordering = ['source']

    def __str__(self):
        return f"{self.source} - {self.consecutive_failures} consecutive failures"

    @property
    def success_rate(self):
        """Calculate success rate as percentage."""
        if self.total_requests == 0:
            return 0
        return ((self.total_requests - self.total_failures) / self.total_requests) * 100

    @property
    def is_healthy(self):
        """Check if adapter is considered healthy."""
        return (
            self.consecutive_failures < 5 and
            self.success_rate > 80
        )
