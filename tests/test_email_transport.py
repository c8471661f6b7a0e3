import json

import pytest
import requests
import responses

from services.email_transport import SENDGRID_SEND_URL, SendGridClient


@pytest.fixture
def client():
    return SendGridClient(api_key='test-api-key', from_email='security@test.com')


@responses.activate
def test_send_email_success(client):
    responses.add(responses.POST, SENDGRID_SEND_URL, status=202)

    assert client.send_email('team@test.com', 'Subject line', '<p>body</p>') is True

    assert len(responses.calls) == 1
    request = responses.calls[0].request
    assert request.headers['Authorization'] == 'Bearer test-api-key'
    assert json.loads(request.body) == {
        'personalizations': [{'to': [{'email': 'team@test.com'}]}],
        'from': {'email': 'security@test.com', 'name': 'Security Guard'},
        'subject': 'Subject line',
        'content': [{'type': 'text/html', 'value': '<p>body</p>'}],
    }


@responses.activate
@pytest.mark.parametrize('status', [400, 401, 403, 500, 503])
def test_send_email_error_status(client, status):
    responses.add(responses.POST, SENDGRID_SEND_URL, status=status, body='{"errors": []}')

    assert client.send_email('team@test.com', 'Subject', '<p></p>') is False


@responses.activate
def test_send_email_network_failure(client):
    responses.add(responses.POST, SENDGRID_SEND_URL, body=requests.ConnectionError('connection refused'))

    assert client.send_email('team@test.com', 'Subject', '<p></p>') is False


@responses.activate
def test_send_email_without_api_key():
    client = SendGridClient(api_key='', from_email='security@test.com')

    assert client.send_email('team@test.com', 'Subject', '<p></p>') is False
    assert len(responses.calls) == 0


@responses.activate
def test_from_config():
    responses.add(responses.POST, 'https://sendgrid.internal/v3/mail/send', status=202)
    client = SendGridClient.from_config({
        'SENDGRID_API_KEY': 'key',
        'FROM_EMAIL': 'alerts@test.com',
        'FROM_NAME': 'Alerts',
        'SENDGRID_API_URL': 'https://sendgrid.internal/v3/mail/send',
        'EMAIL_API_TIMEOUT': 5.0,
    })

    assert client.timeout == 5.0
    assert client.send_email('team@test.com', 'Subject', '<p></p>') is True
    assert json.loads(responses.calls[0].request.body)['from'] == {'email': 'alerts@test.com', 'name': 'Alerts'}


@responses.activate
def test_cookies_do_not_carry_between_sends(client):
    responses.add(responses.POST, SENDGRID_SEND_URL, status=202, headers={'Set-Cookie': 'sid=abc123; Path=/'})

    assert client.send_email('first@test.com', 'Subject', '<p></p>') is True
    assert client.send_email('second@test.com', 'Subject', '<p></p>') is True

    assert len(responses.calls) == 2
    assert 'Cookie' not in responses.calls[1].request.headers
