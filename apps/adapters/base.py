"""
Base adapter class for upstream sensor-network APIs.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import requests
from django.conf import settings
from django.utils import timezone
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .models import RawAPIResponse, AdapterStatus

logger = logging.getLogger(__name__)

# Audit rows keep at most this many characters of a body that is not summarized
MAX_AUDIT_TEXT = 1000


def summarize_payload(payload) -> Dict:
    """
    Audit copy of a response body.

    Member rows are replaced by their count so that a tick stores the
    response metadata rather than the whole group.
    """
    if not isinstance(payload, dict):
        return {'raw': str(payload)[:MAX_AUDIT_TEXT]}

    summary = {key: value for key, value in payload.items() if key != 'data'}
    if 'data' in payload:
        data = payload['data']
        summary['data_count'] = len(data) if isinstance(data, list) else 0
    return summary


class BaseAdapter(ABC):
    """
    Abstract base class for upstream data adapters.

    Provides a retrying session, JSON GET requests that return None instead
    of raising, and a RawAPIResponse/AdapterStatus record of every request.
    """

    # Subclasses must define these
    SOURCE_NAME = None
    SOURCE_CODE = None
    API_BASE_URL = None

    def __init__(self):
        if not all([self.SOURCE_NAME, self.SOURCE_CODE, self.API_BASE_URL]):
            raise ValueError("Adapter must define SOURCE_NAME, SOURCE_CODE, and API_BASE_URL")

        self.settings = settings.AIR_QUALITY_SETTINGS
        self.api_key = settings.API_KEYS.get(self.SOURCE_CODE)
        if not self.api_key:
            logger.warning(f"No API key found for {self.SOURCE_NAME}")
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create requests session with retry logic."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.settings.get('MAX_RETRIES', 3),
            backoff_factor=self.settings.get('RETRY_BACKOFF_FACTOR', 2),
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    @abstractmethod
    def auth_headers(self) -> Dict:
        """Headers that authenticate a request to the upstream API."""

    def _get_json(self, endpoint: str, params: Dict = None) -> Optional[Dict]:
        """
        GET an endpoint and decode its JSON body.

        Args:
            endpoint: API endpoint path
            params: Query parameters

        Returns:
            Response data as dict or None on error
        """
        url = f"{self.API_BASE_URL.rstrip('/')}/{endpoint.lstrip('/')}"
        params = params or {}
        start_time = time.time()
        response = None

        try:
            response = self.session.request(
                method='GET',
                url=url,
                params=params,
                headers=self.auth_headers(),
                timeout=self.settings.get('REQUEST_TIMEOUT', 10),
            )
            response.raise_for_status()
            payload = response.json()

        except (requests.exceptions.RequestException, ValueError) as e:
            # ValueError covers a body that is not JSON
            logger.error(f"{self.SOURCE_NAME} API error: {e}")
            if response is None:
                response = getattr(e, 'response', None)
            self._record(endpoint, params, start_time, response=response, error=str(e))
            return None

        self._record(endpoint, params, start_time, response=response, payload=payload)
        return payload

    def _record(self, endpoint: str, params: Dict, start_time: float,
                response: Optional[requests.Response] = None, payload=None, error: str = ''):
        """Write the audit row and update the adapter's health counters."""
        response_time_ms = int((time.time() - start_time) * 1000)
        status_code = response.status_code if response is not None else 0

        if payload is None and response is not None:
            payload = response.text
        response_data = summarize_payload(payload) if payload is not None else {}

        try:
            RawAPIResponse.objects.create(
                source=self.SOURCE_CODE,
                endpoint=endpoint,
                params=params,
                response_data=response_data,
                status_code=status_code,
                response_time_ms=response_time_ms,
                is_error=bool(error),
                error_message=error,
            )

            status, _ = AdapterStatus.objects.get_or_create(source=self.SOURCE_CODE)
            status.total_requests += 1
            if error:
                status.last_failure_at = timezone.now()
                status.consecutive_failures += 1
                status.total_failures += 1
                status.status_message = error
            else:
                status.last_success_at = timezone.now()
                status.consecutive_failures = 0
            status.save()

        except Exception as e:
            logger.error(f"Failed to record {self.SOURCE_NAME} request: {e}")

    @abstractmethod
    def fetch_readings(self, **kwargs) -> Optional[List]:
        """
        Fetch the latest readings from the upstream network.

        Returns:
            List of readings, or None when the upstream request failed
        """
