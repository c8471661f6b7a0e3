import logging

import pytest

from core.app_registry import (
    AppRegistry,
    get_recipient_email,
    infer_app_name,
    normalize_app_name,
    registry_key,
)


@pytest.fixture
def registry():
    return AppRegistry.from_environ({
        'APP_MAIL_BOX_EMAIL': 'mailbox@test.com',
        'APP_MAIL_BOX_WALLET_EMAIL': 'wallet@test.com',
        'SENDGRID_API_KEY': 'not-a-registry-entry',
        'PATH': '/usr/bin',
    })


class TestNormalization:
    def test_normalize_app_name(self):
        assert normalize_app_name('mail-box_wallet') == 'MAIL_BOX_WALLET'

    def test_registry_key(self):
        assert registry_key('mail-box') == 'APP_MAIL_BOX_EMAIL'

    @pytest.mark.parametrize('app_name', ['mail-box', 'Mail_Box', 'MAIL_BOX', 'mail_box', 'MAIL-BOX'])
    def test_name_variants_resolve_to_same_recipient(self, registry, app_name):
        assert registry.recipient_for(app_name) == 'mailbox@test.com'

    def test_hyphenated_multi_part_name(self, registry):
        assert registry.recipient_for('mail-box-wallet') == 'wallet@test.com'


class TestResolution:
    def test_unknown_app_returns_none(self, registry):
        assert registry.recipient_for('ghost_app') is None

    def test_plain_mapping(self):
        assert get_recipient_email('my-app', {'APP_MY_APP_EMAIL': 'team@test.com'}) == 'team@test.com'
        assert get_recipient_email('other', {'APP_MY_APP_EMAIL': 'team@test.com'}) is None

    def test_only_app_email_keys_are_loaded(self, registry):
        assert set(registry) == {'APP_MAIL_BOX_EMAIL', 'APP_MAIL_BOX_WALLET_EMAIL'}
        assert len(registry) == 2

    @pytest.mark.parametrize('address', [
        'secops@corp.local',
        'alerts@example.test',
        'sec@localhost',
        'Security Team <sec@company.com>',
    ])
    def test_unusual_addresses_are_kept(self, address):
        registry = AppRegistry.from_environ({'APP_MAIL_BOX_EMAIL': address})
        assert registry.recipient_for('mail_box') == address

    def test_suspicious_address_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger='core.app_registry'):
            registry = AppRegistry.from_environ({'APP_BAD_EMAIL': 'not an address'})

        assert registry.recipient_for('bad') == 'not an address'
        assert 'APP_BAD_EMAIL' in caplog.text

    def test_registry_is_read_only(self, registry):
        with pytest.raises(TypeError):
            registry['APP_NEW_EMAIL'] = 'new@test.com'


class TestInferAppName:
    def test_signic_host(self):
        assert infer_app_name('https://app.signic.email/inbox') == 'mail_box'

    def test_signic_apex(self):
        assert infer_app_name('https://signic.email/') == 'mail_box'

    def test_chrome_extension(self):
        assert infer_app_name('chrome-extension://abcd1234/popup.html') == 'mail_box_wallet'

    def test_unknown_host(self):
        assert infer_app_name('https://unknown.com/page') is None

    @pytest.mark.parametrize('document_uri', ['', 'not a url', 'about', 'http://[::1/broken'])
    def test_unparseable_uri(self, document_uri):
        assert infer_app_name(document_uri) is None
