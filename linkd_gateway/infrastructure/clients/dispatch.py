"""Report dispatcher client with exponential backoff retry logic"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Tuple

import httpx

from linkd_gateway.config import settings
from linkd_gateway.domain.exceptions import DispatchError
from linkd_gateway.domain.models import ReportSchedule
from linkd_gateway.infrastructure.observability.metrics import dispatch_failure_counter, dispatch_latency_histogram


class ReportDispatchClient:
    """Client for the external service that renders and emails scheduled reports"""

    def __init__(self, dispatch_url: str | None = None, timeout: float | None = None):
        self.dispatch_url = dispatch_url or settings.report_dispatch_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.dispatch_max_retries
        self.backoff_base = settings.dispatch_backoff_base

    @staticmethod
    def build_payload(schedule: ReportSchedule, window: Tuple[datetime, datetime]) -> Dict[str, Any]:
        start, end = window
        return {
            "scheduleId": schedule.id,
            "reportType": schedule.report_type,
            "reportName": schedule.report_name,
            "recipients": list(schedule.email_recipients),
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
        }

    async def send_report(self, schedule: ReportSchedule, window: Tuple[datetime, datetime]) -> Dict[str, Any]:
        """
        Ask the dispatcher to render and email one scheduled report.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s (base * 2^attempt)
        - Retries on 5xx errors and network failures; 4xx fails immediately

        Raises:
            DispatchError: After the final failed attempt
        """
        payload = self.build_payload(schedule, window)
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while True:
                try:
                    with dispatch_latency_histogram.time():
                        response = await client.post(self.dispatch_url, json=payload)
                        response.raise_for_status()
                    return response.json() if response.content else {}

                except httpx.HTTPStatusError as e:
                    dispatch_failure_counter.inc()
                    attempt += 1
                    if e.response.status_code < 500 or attempt >= self.max_retries:
                        raise DispatchError(f"Dispatcher returned {e.response.status_code}") from e

                except httpx.RequestError as e:
                    dispatch_failure_counter.inc()
                    attempt += 1
                    if attempt >= self.max_retries:
                        raise DispatchError(f"Dispatcher unreachable: {e}") from e

                except ValueError as e:
                    raise DispatchError(f"Invalid dispatcher response: {e}") from e

                # Exponential backoff: 1s, 2s, 4s
                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))
