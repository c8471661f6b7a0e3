# middleware/security.py
"""
Request guards and response headers applied to every request
"""

from flask import current_app, jsonify, request
import logging

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ('POST', 'OPTIONS')


def error_response(message: str, status_code: int):
    """JSON error body used by every failing endpoint"""
    return jsonify({'success': False, 'error': message}), status_code


def guard_request():
    """
    Reject requests before routing

    - OPTIONS on any path is a CORS preflight and gets an empty 200
    - any method other than POST is refused with 405
    - bodies over MAX_REQUEST_BODY_SIZE are refused with 413
    """
    if request.method == 'OPTIONS':
        return current_app.response_class(status=200)

    if request.method not in ALLOWED_METHODS:
        logger.info(f"Method not allowed: {request.method} {request.path}")
        return error_response('Method not allowed', 405)

    max_size = current_app.config['MAX_REQUEST_BODY_SIZE']
    if request.content_length is not None and request.content_length > max_size:
        logger.warning(f"Payload too large ({request.content_length} bytes) from {request.remote_addr}")
        return error_response('Payload too large', 413)

    return None


def cors_headers(response):
    """Fill in CORS headers flask-cors only sends on preflight requests"""
    config = current_app.config
    response.headers.setdefault('Access-Control-Allow-Origin', config['CORS_ORIGINS'])
    response.headers.setdefault('Access-Control-Allow-Methods', ', '.join(config['CORS_METHODS']))
    response.headers.setdefault('Access-Control-Allow-Headers', ', '.join(config['CORS_ALLOW_HEADERS']))
    return response


def security_headers(response):
    """Add security headers to all responses"""
    for header, value in current_app.config['SECURITY_HEADERS'].items():
        response.headers.setdefault(header, value)
    return response
