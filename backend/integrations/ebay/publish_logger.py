"""
Trace-id tagged logging for the publish pipeline.

Every line is prefixed with [eBay Publish][traceId=...] so one attempt can be
followed across steps. Only sku, offer id, listing id, location key and
marketplace are logged; never tokens or full payloads.
"""

import logging
import uuid
from typing import Dict, Optional, List

from schemas import StepName

logger = logging.getLogger(__name__)


def generate_trace_id() -> str:
    return str(uuid.uuid4())


def _format_details(details: Optional[Dict[str, str]]) -> str:
    if not details:
        return ""
    return " { " + ", ".join(f"{k}: {v}" for k, v in details.items()) + " }"


class PublishLogger(logging.LoggerAdapter):
    """LoggerAdapter carrying the trace id of one publish attempt."""

    def __init__(self, trace_id: str, base_logger: Optional[logging.Logger] = None):
        super().__init__(base_logger or logger, {"trace_id": trace_id})
        self.trace_id = trace_id

    def process(self, msg, kwargs):
        return f"[eBay Publish][traceId={self.trace_id}] {msg}", kwargs

    def step_started(self, step: StepName) -> None:
        self.info(f"Step {step.value} started")

    def step_complete(self, step: StepName, details: Optional[Dict[str, str]] = None) -> None:
        self.info(f"Step {step.value} complete{_format_details(details)}")

    def step_failed(self, step: StepName, error: str) -> None:
        self.error(f"Step {step.value} FAILED: {error}")

    def step_skipped(self, step: StepName, reason: str) -> None:
        self.info(f"Step {step.value} skipped: {reason}")

    def validation_failed(self, field: str, message: str) -> None:
        self.error(f"Validation failed - {field}: {message}")

    def api_call(
        self,
        step: StepName,
        method: str,
        path: str,
        status_code: Optional[int],
        request_id: Optional[str] = None,
        payload_keys: Optional[List[str]] = None,
        safe_values: Optional[Dict[str, str]] = None
    ) -> None:
        parts = [f"API {method} {path}", f"status={status_code}", f"step={step.value}"]
        if request_id:
            parts.append(f"requestId={request_id}")
        if payload_keys:
            parts.append(f"payloadKeys=[{','.join(payload_keys)}]")
        if safe_values:
            parts.extend(f"{k}={v}" for k, v in safe_values.items())
        self.info(" ".join(parts))
