"""Credential age and expiration tracking."""

import re
from datetime import datetime, timezone

from .config import get_aws_credentials_path
from .errors import ExpiryUnparseable

FRACTIONAL_SECONDS_RE = re.compile(r'\.[0-9]+(?=(Z|\+00:00)$)')
EXPIRATION_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def parse_expiration(expiration):
    """
    Parse an STS expiration into an aware UTC datetime.

    Accepts datetimes (as boto3 returns them) and the text forms
    ``2025-10-09T12:34:56.000Z``, ``2025-10-09T12:34:56Z`` and
    ``2025-10-09T12:34:56+00:00``.

    Raises:
        ExpiryUnparseable: If the value matches none of the accepted forms
    """
    if isinstance(expiration, datetime):
        if expiration.tzinfo is None:
            return expiration.replace(tzinfo=timezone.utc)
        return expiration.astimezone(timezone.utc)

    text = str(expiration).strip()
    text = FRACTIONAL_SECONDS_RE.sub('', text)
    if text.endswith('+00:00'):
        text = text[:-len('+00:00')] + 'Z'

    try:
        return datetime.strptime(text, EXPIRATION_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        raise ExpiryUnparseable(f'Could not parse expiration time: {expiration}')


def get_time_remaining(expiration, now=None):
    """
    Get the time left before credentials expire.

    Args:
        expiration: Expiration datetime or text
        now: Reference time (defaults to the current UTC time)

    Returns:
        dict: ``expired``, whole ``hours`` and ``minutes`` left, a display
        string ``expires_in`` and ``expiration_date``
    """
    expires_at = parse_expiration(expiration)
    now = now or datetime.now(timezone.utc)

    seconds_remaining = int((expires_at - now).total_seconds())
    expiration_date = expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')

    if seconds_remaining <= 0:
        return {
            'expired': True,
            'hours': 0,
            'minutes': 0,
            'expires_in': 'Expired',
            'expiration_date': expiration_date
        }

    hours = seconds_remaining // 3600
    minutes = (seconds_remaining % 3600) // 60

    return {
        'expired': False,
        'hours': hours,
        'minutes': minutes,
        'expires_in': f'{hours}h {minutes}m',
        'expiration_date': expiration_date
    }


def get_credential_age(path=None):
    """Get the age of stored credentials based on file modification time."""
    credentials_path = get_aws_credentials_path(path)

    if not credentials_path.exists():
        return 'N/A'

    mtime = credentials_path.stat().st_mtime
    mod_time = datetime.fromtimestamp(mtime, tz=timezone.utc)
    age = datetime.now(timezone.utc) - mod_time

    days = age.days
    hours = age.seconds // 3600

    if days > 0:
        return f"{days}d {hours}h"
    elif hours > 0:
        return f"{hours}h"
    else:
        minutes = age.seconds // 60
        return f"{minutes}m"
