# api/alerts.py
"""
Alert ingestion endpoints

/alert and /security-alert take alerts from client-side interceptors and
answer with JSON. /csp-report takes browser CSP violation reports and always
answers 204 once the body has been parsed; browsers must never see an error
from a report endpoint.
"""

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest
import logging

from core.alert_models import (
    AlertValidationError,
    CspReport,
    MalformedPayloadError,
    SecurityAlert,
)
from core.app_registry import infer_app_name
from core.email_template import format_security_alert_email
from middleware.security import error_response

alerts_bp = Blueprint('alerts', __name__)
logger = logging.getLogger(__name__)


def parse_json_body():
    """Decode the request body as JSON regardless of Content-Type"""
    try:
        return request.get_json(force=True)
    except BadRequest as e:
        raise MalformedPayloadError(f"Invalid JSON body: {e.description}") from e


def no_content():
    return current_app.response_class(status=204)


@alerts_bp.route('/alert', methods=['POST'])
@alerts_bp.route('/security-alert', methods=['POST'])
def security_alert():
    """Validate an interceptor alert, resolve its mailbox and email it"""
    payload = parse_json_body()

    try:
        alert = SecurityAlert.from_payload(payload)
    except AlertValidationError as e:
        logger.info(f"Rejected alert: {str(e)}")
        return error_response(str(e), 400)

    recipient = current_app.app_registry.recipient_for(alert.app_name)
    if not recipient:
        logger.warning(f"Unknown app: {alert.app_name}")
        return error_response('Unknown app', 400)

    email_sent = current_app.email_client.send_email(
        to=recipient,
        subject=f"[Security Alert] {alert.app_name}: {alert.type.value}",
        html=format_security_alert_email(alert),
    )

    if not email_sent:
        logger.error(f"Failed to deliver {alert.type.value} alert for {alert.app_name}")

    return jsonify({'success': email_sent}), 200 if email_sent else 500


@alerts_bp.route('/csp-report', methods=['POST'])
def csp_report():
    """Email a browser CSP violation report to the owning app's mailbox"""
    report = CspReport.from_payload(parse_json_body())
    if report is None:
        logger.warning("CSP report body has no csp-report object")
        return no_content()

    app_name = request.args.get('appName') or infer_app_name(report.document_uri)
    if not app_name:
        logger.warning(f"CSP report without appName: {report}")
        return no_content()

    recipient = current_app.app_registry.recipient_for(app_name)
    if not recipient:
        logger.warning(f"Unknown app for CSP report: {app_name}")
        return no_content()

    alert = report.to_alert(app_name)
    email_sent = current_app.email_client.send_email(
        to=recipient,
        subject=f"[CSP Violation] {app_name}: {report.violated_directive}",
        html=format_security_alert_email(alert),
    )

    if not email_sent:
        logger.error(f"Failed to deliver CSP report for {app_name}")

    return no_content()
