# core/alert_models.py
"""
Alert payload models and validation

A SecurityAlert lives for one request. It is built either from a client-side
interceptor payload (validated here) or from a browser CSP violation report.
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit


class AlertType(Enum):
    """Security violation types reported by client interceptors"""
    UNAUTHORIZED_FETCH = "unauthorized_fetch"
    UNAUTHORIZED_XHR = "unauthorized_xhr"
    UNAUTHORIZED_WEBSOCKET = "unauthorized_websocket"
    CSP_VIOLATION = "csp_violation"


VALID_ALERT_TYPES = tuple(alert_type.value for alert_type in AlertType)


class AlertError(Exception):
    """Base exception for alert ingestion"""
    pass


class AlertValidationError(AlertError, ValueError):
    """Payload is well-formed JSON but fails field validation"""
    pass


class MalformedPayloadError(AlertError):
    """Request body could not be parsed as JSON"""
    pass


@dataclass(frozen=True)
class SecurityAlert:
    """Security alert sent by a client-side interceptor"""
    app_name: str
    type: AlertType
    url: str
    hostname: str
    timestamp: float  # epoch milliseconds
    stack: Optional[str] = None
    app_version: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = field(default=None)

    @classmethod
    def from_payload(cls, payload: Any) -> 'SecurityAlert':
        """
        Validate a decoded JSON payload and build an alert from it

        Raises:
            AlertValidationError: with a message naming the offending field
        """
        if not isinstance(payload, dict):
            raise AlertValidationError('Request body must be a JSON object')

        app_name = payload.get('appName')
        if not isinstance(app_name, str) or not app_name:
            raise AlertValidationError('appName must be a non-empty string')

        alert_type = payload.get('type')
        if not isinstance(alert_type, str) or alert_type not in VALID_ALERT_TYPES:
            raise AlertValidationError(f"type must be one of: {', '.join(VALID_ALERT_TYPES)}")

        if not isinstance(payload.get('url'), str):
            raise AlertValidationError('url must be a string')

        if not isinstance(payload.get('hostname'), str):
            raise AlertValidationError('hostname must be a string')

        timestamp = payload.get('timestamp')
        if not _is_number(timestamp):
            raise AlertValidationError('timestamp must be a number')

        for key in ('stack', 'appVersion', 'userAgent'):
            value = payload.get(key)
            if value is not None and not isinstance(value, str):
                raise AlertValidationError(f'{key} must be a string')

        metadata = payload.get('metadata')
        if metadata is not None and not isinstance(metadata, dict):
            raise AlertValidationError('metadata must be an object')

        return cls(
            app_name=app_name,
            type=AlertType(alert_type),
            url=payload['url'],
            hostname=payload['hostname'],
            timestamp=timestamp,
            stack=payload.get('stack'),
            app_version=payload.get('appVersion'),
            user_agent=payload.get('userAgent'),
            metadata=metadata,
        )


@dataclass(frozen=True)
class CspReport:
    """The `csp-report` object browsers POST to a report-uri"""
    document_uri: str
    violated_directive: str
    blocked_uri: str
    original_policy: Optional[str] = None
    source_file: Optional[str] = None
    line_number: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional['CspReport']:
        """Return the report, or None when the body carries no csp-report object"""
        if not isinstance(payload, dict):
            return None
        report = payload.get('csp-report')
        if not isinstance(report, Mapping):
            return None

        return cls(
            document_uri=_as_text(report.get('document-uri')),
            violated_directive=_as_text(report.get('violated-directive')),
            blocked_uri=_as_text(report.get('blocked-uri')),
            original_policy=report.get('original-policy'),
            source_file=report.get('source-file'),
            line_number=report.get('line-number'),
        )

    def to_alert(self, app_name: str, timestamp: Optional[float] = None) -> SecurityAlert:
        """Convert the report into a csp_violation alert for app_name"""
        metadata = {
            'documentUri': self.document_uri,
            'violatedDirective': self.violated_directive,
            'originalPolicy': self.original_policy,
            'sourceFile': self.source_file,
            'lineNumber': self.line_number,
        }

        return SecurityAlert(
            app_name=app_name,
            type=AlertType.CSP_VIOLATION,
            url=self.blocked_uri,
            hostname=extract_hostname(self.blocked_uri),
            timestamp=timestamp if timestamp is not None else now_ms(),
            metadata={k: v for k, v in metadata.items() if v is not None},
        )


def extract_hostname(url: str) -> str:
    """Hostname of url, or url itself when it has no scheme to parse"""
    try:
        parts = urlsplit(url)
        if not parts.scheme:
            return url
        return parts.hostname or ''
    except ValueError:
        return url


def now_ms() -> int:
    return int(time.time() * 1000)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but not a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    return value if isinstance(value, str) else str(value)
