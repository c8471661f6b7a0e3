# core/app_registry.py
"""
App registry: routes alerts to a team mailbox by application name

Entries come from APP_<NAME>_EMAIL environment variables and are frozen when
the registry is built. Lookups normalize the incoming name so that
`mail-box`, `Mail_Box` and `MAIL_BOX` all hit APP_MAIL_BOX_EMAIL.
"""

import logging
import re
from collections.abc import Mapping as MappingABC
from types import MappingProxyType
from typing import Callable, Iterator, Mapping, Optional, Tuple
from urllib.parse import SplitResult, urlsplit

from email_validator import validate_email, EmailNotValidError

logger = logging.getLogger(__name__)

REGISTRY_KEY_PATTERN = re.compile(r'^APP_(.+)_EMAIL$')


def normalize_app_name(app_name: str) -> str:
    """mail-box_wallet -> MAIL_BOX_WALLET"""
    return app_name.upper().replace('-', '_')


def registry_key(app_name: str) -> str:
    return f"APP_{normalize_app_name(app_name)}_EMAIL"


def get_recipient_email(app_name: str, registry: Mapping[str, str]) -> Optional[str]:
    """Recipient configured for app_name, or None if the app is not registered"""
    return registry.get(registry_key(app_name))


class AppRegistry(MappingABC):
    """Read-only APP_<NAME>_EMAIL -> address mapping"""

    def __init__(self, entries: Mapping[str, str]):
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> 'AppRegistry':
        """
        Collect registry entries from environment variables

        Every APP_<NAME>_EMAIL key is kept as configured. Values that
        email-validator rejects are only logged, since internal mailboxes
        (corp.local, localhost) are legitimate recipients.
        """
        entries = {}
        for key, value in environ.items():
            if not REGISTRY_KEY_PATTERN.match(key):
                continue
            try:
                validate_email(value, check_deliverability=False)
            except EmailNotValidError as e:
                logger.warning(f"Registry entry {key} does not look like an address: {str(e)}")
            entries[key] = value

        logger.info(f"App registry loaded with {len(entries)} entries")
        return cls(entries)

    def recipient_for(self, app_name: str) -> Optional[str]:
        return get_recipient_email(app_name, self._entries)

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def _signic_host(url: SplitResult) -> bool:
    return 'signic.email' in (url.hostname or '')


def _chrome_extension(url: SplitResult) -> bool:
    return url.scheme == 'chrome-extension'


# Ordered (matcher, app name) pairs; first match wins
INFERENCE_RULES: Tuple[Tuple[Callable[[SplitResult], bool], str], ...] = (
    (_signic_host, 'mail_box'),
    (_chrome_extension, 'mail_box_wallet'),
)


def infer_app_name(document_uri: str) -> Optional[str]:
    """
    Guess the reporting application from a CSP report's document-uri

    Returns None when the URI cannot be parsed or no rule matches.
    """
    try:
        url = urlsplit(document_uri)
    except ValueError:
        return None

    if not url.scheme:
        return None

    for matches, app_name in INFERENCE_RULES:
        if matches(url):
            return app_name
    return None
