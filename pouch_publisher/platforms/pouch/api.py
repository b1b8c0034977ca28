"""Form-encoded dispatch to the Pouch API and response classification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from pouch_publisher.core.audit_log import DebugLog
from pouch_publisher.core.errors import ApiError, NetworkError
from pouch_publisher.core.state import Destination
from pouch_publisher.utils.logging import get_logger

LOGGER = get_logger(__name__)

PUBLISH_ENDPOINT = "/php/api_create_post.php"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_CODED_STATUS = re.compile(r"ERROR_(\d+)")


@dataclass(slots=True)
class RawResponse:
    """Status code plus the decoded JSON object (empty when the body was not JSON)."""

    status: int
    body: dict[str, Any]


def decode_body(response: requests.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def classify_response(status: int, body: Mapping[str, Any]) -> dict[str, Any]:
    """Return the body of a successful publish response or raise :class:`ApiError`."""
    if status == 200:
        if body.get("status") == "success":
            return dict(body)
        message = body.get("error") or body.get("message") or "Unknown error"
        raise ApiError(str(message), status_code=200, details={"status": body.get("status")})

    status_code = status
    coded = body.get("status")
    if isinstance(coded, str):
        match = _CODED_STATUS.match(coded)
        if match:
            status_code = int(match.group(1))
    message = body.get("error") or body.get("message") or f"HTTP {status}"
    raise ApiError(str(message), status_code=status_code, details={"http_status": status})


def clean_form(fields: Mapping[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in fields.items() if value not in ("", None)}


class PouchApiClient:
    """Sends requests to a destination and mirrors every exchange into the debug trace."""

    def __init__(
        self,
        debug_log: DebugLog,
        *,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._debug = debug_log
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def debug_log(self) -> DebugLog:
        return self._debug

    def post(
        self,
        url: str,
        *,
        data: Mapping[str, str] | bytes,
        headers: Mapping[str, str] | None = None,
        error_label: str = "Network/request exception",
    ) -> RawResponse:
        """POST ``data`` and return the decoded response; transport faults raise NetworkError."""
        try:
            response = self._session.post(
                url, data=data, headers=dict(headers or {}), timeout=self._timeout
            )
        except requests.RequestException as exc:
            self._debug.error(f"{error_label}: {exc}", endpoint=url, exc=exc)
            LOGGER.error(
                "Request to Pouch failed",
                extra={"event": "pouch.network_error", "endpoint": url, "reason": str(exc)},
            )
            raise NetworkError(str(exc), details={"endpoint": url}) from exc
        return RawResponse(status=response.status_code, body=decode_body(response))

    def send(
        self,
        endpoint: str,
        fields: Mapping[str, Any],
        destination: Destination,
    ) -> dict[str, Any]:
        """Dispatch a publish form; returns the success payload or raises ApiError/NetworkError."""
        form = {"api_key": destination.api_key}
        form.update(clean_form(fields))
        url = destination.endpoint(endpoint)

        LOGGER.info(
            "Sending API request",
            extra={"event": "pouch.request", "endpoint": url, "fields": sorted(form)},
        )
        self._debug.request(url, "Sending API request to Pouch", data=form)
        raw = self.post(url, data=form, headers={"Content-Type": FORM_CONTENT_TYPE})
        self._debug.response(
            url, raw.status, raw.body, f"Received API response with status {raw.status}"
        )

        try:
            payload = classify_response(raw.status, raw.body)
        except ApiError as exc:
            label = (
                f"API returned error: {exc.message}"
                if raw.status == 200
                else f"HTTP error {exc.status_code}: {exc.message}"
            )
            self._debug.error(label, endpoint=url, status=exc.status_code, body=raw.body)
            LOGGER.warning(
                "Pouch rejected the request",
                extra={"event": "pouch.api_error", "status_code": exc.status_code},
            )
            raise

        self._debug.info("API request successful", body=payload)
        return payload


__all__ = [
    "FORM_CONTENT_TYPE",
    "PUBLISH_ENDPOINT",
    "PouchApiClient",
    "RawResponse",
    "classify_response",
    "clean_form",
    "decode_body",
]
