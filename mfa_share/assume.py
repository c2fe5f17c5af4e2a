"""MFA-authenticated role assumption through STS."""

import getpass
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .config import (
    AMBIENT_AWS_ENV_VARS,
    DEFAULT_REGION,
    MAX_SESSION_DURATION,
    MIN_SESSION_DURATION,
    SESSION_DURATION,
)
from .errors import AssumeRoleFailed, CredentialExtractionFailed, InvalidInput
from .mfa import validate_mfa_token

logger = logging.getLogger(__name__)

ACCOUNT_ID_RE = re.compile(r'^[0-9]{12}$')
SESSION_NAME_UNSAFE_RE = re.compile(r'[^\w+=,.@-]', re.ASCII)


@dataclass(frozen=True)
class Credentials:
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Any


def validate_account_id(account_id):
    if not isinstance(account_id, str) or not ACCOUNT_ID_RE.match(account_id):
        raise InvalidInput(
            f"Invalid account ID format. Expected 12-digit number, got: '{account_id}'",
            hints=['Use --profile mode for named profiles, or provide a 12-digit account ID'],
        )
    return account_id


def validate_duration(duration_seconds):
    """Check a session duration against the STS limits (15 minutes to 12 hours)."""
    try:
        duration = int(duration_seconds)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid duration: '{duration_seconds}'. Must be a positive integer.")
    if isinstance(duration_seconds, float) and duration != duration_seconds:
        raise InvalidInput(f"Invalid duration: '{duration_seconds}'. Must be a whole number of seconds.")

    if duration < MIN_SESSION_DURATION or duration > MAX_SESSION_DURATION:
        raise InvalidInput(
            f'Invalid duration: {duration} seconds. Must be between '
            f'{MIN_SESSION_DURATION} (15 min) and {MAX_SESSION_DURATION} (12 hours).'
        )
    return duration


def build_session_name():
    """Unique RoleSessionName: <user>_mfa_session_<epoch>_<random>."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = 'mfa-share'
    # STS constraint: ASCII [\w+=,.@-]{2,64}
    safe_user = SESSION_NAME_UNSAFE_RE.sub('-', user)[:32]
    return f'{safe_user}_mfa_session_{int(time.time())}_{uuid.uuid4().hex[:8]}'


def clear_ambient_credentials():
    """Drop AWS credential, profile and region overrides from the process environment."""
    for name in AMBIENT_AWS_ENV_VARS:
        os.environ.pop(name, None)


def classify_assume_role_error(error_text, account_id, role_name):
    """
    Map an STS error to a category and hints for the user.

    Returns:
        tuple: (category, hints)
    """
    if 'InvalidClientTokenId' in error_text or 'Unable to locate credentials' in error_text:
        return 'invalid_credentials', [
            'Your AWS credentials in ~/.aws/credentials might be invalid or expired',
            "Run 'aws configure' to set up your base AWS credentials",
        ]
    # STS reports a bad MFA code as AccessDenied, so check the message first
    if 'MultiFactorAuthentication' in error_text:
        return 'mfa', [
            'Is your MFA code correct? (6 digits from authenticator app)',
            'MFA codes expire every 30 seconds - try a fresh code',
            'Is your MFA device configured correctly in AWS?',
        ]
    if 'AccessDenied' in error_text:
        return 'access_denied', [
            f"The role '{role_name}' might not exist in account {account_id}",
            'You might not have permission to access this account/role (sts:AssumeRole)',
            'Check with your AWS administrator about access permissions',
        ]
    return 'unknown', [f'AWS Error: {error_text}']


def assume_role_with_mfa(mfa_token, account_id, role_name, mfa_serial,
                         duration_seconds=SESSION_DURATION, region=None):
    """
    Assume a role with an MFA code. One attempt, no retries.

    Args:
        mfa_token: Six-digit code from the MFA device
        account_id: 12-digit account that owns the role
        role_name: Role name (may include a path)
        mfa_serial: MFA device serial number (ARN)
        duration_seconds: Session duration, 900-43200
        region: Region for the STS client

    Returns:
        Credentials: Temporary credentials for the role

    Raises:
        InvalidInput: If the token, account ID or duration is malformed
        AssumeRoleFailed: If STS rejects the request
        CredentialExtractionFailed: If the response lacks any credential field
    """
    validate_mfa_token(mfa_token)
    validate_account_id(account_id)
    duration = validate_duration(duration_seconds)

    role_arn = f'arn:aws:iam::{account_id}:role/{role_name}'
    session_name = build_session_name()

    logger.info('Assuming role: %s', role_arn)
    logger.debug('MFA Serial: %s', mfa_serial)
    logger.debug('Session duration: %s seconds', duration)

    clear_ambient_credentials()

    try:
        sts_client = boto3.Session(region_name=region or DEFAULT_REGION).client('sts')
        response = sts_client.assume_role(
            RoleArn=role_arn,
            RoleSessionName=session_name,
            SerialNumber=mfa_serial,
            TokenCode=mfa_token,
            DurationSeconds=duration,
        )
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))
        category, hints = classify_assume_role_error(f'{error_code}: {error_message}', account_id, role_name)
        raise AssumeRoleFailed(
            f'Could not get AWS credentials ({error_code}): {error_message}',
            category=category,
            hints=hints,
        )
    except NoCredentialsError as e:
        category, hints = classify_assume_role_error(str(e), account_id, role_name)
        raise AssumeRoleFailed(f'Could not get AWS credentials: {e}', category=category, hints=hints)
    except BotoCoreError as e:
        raise AssumeRoleFailed(f'Could not get AWS credentials: {e}', hints=[f'AWS Error: {e}'])

    creds = response.get('Credentials') or {}
    fields = {
        'access_key_id': creds.get('AccessKeyId'),
        'secret_access_key': creds.get('SecretAccessKey'),
        'session_token': creds.get('SessionToken'),
        'expiration': creds.get('Expiration'),
    }
    missing = [name for name, value in fields.items() if value in (None, '', 'null')]
    if missing:
        raise CredentialExtractionFailed(
            f'Failed to extract credentials from AWS response (missing: {", ".join(missing)})'
        )

    logger.info('Successfully assumed role: %s', role_name)
    return Credentials(**fields)
