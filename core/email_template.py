# core/email_template.py
"""
HTML email rendering for security alert notifications

Every user-supplied value is passed through escape_html() before it reaches
the document. The Jinja2 environment autoescapes as well, so a field that
misses the filter is still neutralized rather than injected.
"""

import json
import logging
from datetime import datetime, timedelta, timezone

from jinja2 import Environment, select_autoescape
from markupsafe import Markup

from core.alert_models import SecurityAlert

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def escape_html(value: str) -> str:
    """
    Escape HTML special characters to prevent XSS in email clients

    `&` is replaced first so entity text produced by later replacements is
    not escaped again.
    """
    return (value
            .replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;')
            .replace("'", '&#039;'))


def _escape_filter(value) -> Markup:
    return Markup(escape_html(str(value)))


def format_timestamp(timestamp_ms: float) -> str:
    """Epoch milliseconds -> 2024-01-15T10:30:00.000Z"""
    # fractional milliseconds are truncated
    moment = EPOCH + timedelta(milliseconds=int(timestamp_ms))
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def format_alert_type(alert_type: str) -> str:
    return alert_type.replace('_', ' ').upper()


ALERT_EMAIL_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #dc2626; color: white; padding: 20px; border-radius: 8px 8px 0 0; }
    .content { background: #f9fafb; padding: 20px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 8px 8px; }
    .field { margin-bottom: 12px; }
    .label { font-weight: 600; color: #6b7280; font-size: 12px; text-transform: uppercase; }
    .value { font-family: monospace; background: #e5e7eb; padding: 8px 12px; border-radius: 4px; word-break: break-all; }
    .stack { font-size: 12px; white-space: pre-wrap; max-height: 200px; overflow: auto; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h2 style="margin: 0;">Security Alert</h2>
      <p style="margin: 8px 0 0 0; opacity: 0.9;">{{ alert_type | escape_html }}</p>
    </div>
    <div class="content">
      <div class="field">
        <div class="label">Application</div>
        <div class="value">{{ alert.app_name | escape_html }}</div>
      </div>
      <div class="field">
        <div class="label">Date &amp; Time</div>
        <div class="value">{{ timestamp | escape_html }}</div>
      </div>
      <div class="field">
        <div class="label">Blocked URL</div>
        <div class="value">{{ alert.url | escape_html }}</div>
      </div>
      <div class="field">
        <div class="label">Hostname</div>
        <div class="value">{{ alert.hostname | escape_html }}</div>
      </div>
{% if alert.app_version %}
      <div class="field">
        <div class="label">App Version</div>
        <div class="value">{{ alert.app_version | escape_html }}</div>
      </div>
{% endif %}
{% if alert.user_agent %}
      <div class="field">
        <div class="label">User Agent</div>
        <div class="value">{{ alert.user_agent | escape_html }}</div>
      </div>
{% endif %}
{% if alert.stack %}
      <div class="field">
        <div class="label">Stack Trace</div>
        <div class="value stack">{{ alert.stack | escape_html }}</div>
      </div>
{% endif %}
{% if metadata_json %}
      <div class="field">
        <div class="label">Additional Details</div>
        <div class="value"><pre>{{ metadata_json | escape_html }}</pre></div>
      </div>
{% endif %}
    </div>
  </div>
</body>
</html>"""


_env = Environment(
    autoescape=select_autoescape(['html', 'xml']),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters['escape_html'] = _escape_filter
_alert_template = _env.from_string(ALERT_EMAIL_TEMPLATE)


def format_security_alert_email(alert: SecurityAlert) -> str:
    """
    Format a security alert as a styled HTML email

    Args:
        alert: Validated alert to render

    Returns:
        Complete HTML document ready for delivery
    """
    metadata_json = None
    if alert.metadata is not None:
        metadata_json = json.dumps(alert.metadata, indent=2, ensure_ascii=False)

    html = _alert_template.render(
        alert=alert,
        alert_type=format_alert_type(alert.type.value),
        timestamp=format_timestamp(alert.timestamp),
        metadata_json=metadata_json,
    )
    logger.debug(f"Rendered {alert.type.value} email for {alert.app_name} ({len(html)} bytes)")
    return html
