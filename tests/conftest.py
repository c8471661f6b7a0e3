import pytest
import responses

from app import create_app
from services.email_transport import SENDGRID_SEND_URL as SENDGRID_URL

TEST_ENVIRON = {
    'SENDGRID_API_KEY': 'test-api-key',
    'FROM_EMAIL': 'security@test.com',
    'APP_MAIL_BOX_EMAIL': 'mailbox@test.com',
    'APP_MAIL_BOX_WALLET_EMAIL': 'wallet@test.com',
}


@pytest.fixture
def base_environ():
    return dict(TEST_ENVIRON)


@pytest.fixture
def make_app():
    """Build an app from TEST_ENVIRON with per-test overrides"""
    def _make(**overrides):
        environ = dict(TEST_ENVIRON)
        environ.update(overrides)
        return create_app('testing', environ=environ)
    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sendgrid():
    """SendGrid send endpoint answering 202 Accepted"""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        mock.add(responses.POST, SENDGRID_URL, status=202)
        yield mock


@pytest.fixture
def valid_alert():
    return {
        'appName': 'mail_box',
        'type': 'unauthorized_fetch',
        'url': 'https://malicious.com/api',
        'hostname': 'malicious.com',
        'timestamp': 1705314600000,
    }


@pytest.fixture
def csp_report():
    return {
        'csp-report': {
            'document-uri': 'https://app.signic.email/inbox',
            'violated-directive': 'img-src',
            'blocked-uri': 'https://tracker.com/pixel.gif',
        }
    }
