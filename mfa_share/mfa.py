"""MFA device detection and one-time code handling."""

import logging
import os
import re
import subprocess

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import MFA_SERIAL_ENV, get_aws_config_path, get_default_region
from .errors import ConfigNotFound, InvalidInput, MfaSerialUndetectable, MfaTokenUnavailable
from .profiles import parse_config

logger = logging.getLogger(__name__)

MFA_TOKEN_RE = re.compile(r'^[0-9]{6}$')


def validate_mfa_token(token):
    """Return the token if it is exactly six digits, otherwise raise InvalidInput."""
    if not isinstance(token, str) or not MFA_TOKEN_RE.match(token):
        raise InvalidInput(f"Invalid MFA token format. Expected 6 digits, got: '{token}'")
    return token


def detect_mfa_serial(config_path=None):
    """
    Work out which MFA device to authenticate with.

    First match wins:
      1. The AWS_MFA_SERIAL environment variable
      2. The first ``mfa_serial`` in the AWS config file
      3. ``arn:aws:iam::<account>:mfa/<user>`` built from the caller identity

    Args:
        config_path: AWS config file to search (defaults to AWS_CONFIG_FILE or ~/.aws/config)

    Returns:
        str: MFA device serial number (ARN)

    Raises:
        MfaSerialUndetectable: If none of the sources produce a serial
    """
    override = os.environ.get(MFA_SERIAL_ENV)
    if override:
        logger.debug('Using MFA serial from %s environment variable', MFA_SERIAL_ENV)
        return override

    aws_config = get_aws_config_path(config_path)
    try:
        mfa_serial = parse_config(aws_config).mfa_serial
    except ConfigNotFound:
        mfa_serial = None

    if mfa_serial:
        logger.debug('Detected MFA serial from %s: %s', aws_config, mfa_serial)
        return mfa_serial

    try:
        identity = boto3.Session(region_name=get_default_region()).client('sts').get_caller_identity()
    except (BotoCoreError, ClientError) as e:
        logger.debug('Caller identity lookup failed: %s', e)
        identity = {}

    account_id = identity.get('Account')
    user_arn = identity.get('Arn') or ''
    username = user_arn.split('/')[-1] if '/' in user_arn else ''

    if account_id and username:
        mfa_serial = f'arn:aws:iam::{account_id}:mfa/{username}'
        logger.debug('Constructed MFA serial from caller identity: %s', mfa_serial)
        return mfa_serial

    raise MfaSerialUndetectable(
        'Could not auto-detect MFA serial number',
        hints=[f'Set the {MFA_SERIAL_ENV} environment variable or configure mfa_serial in ~/.aws/config'],
    )


def get_mfa_token_from_op(item):
    """
    Read the current one-time code for a 1Password item via the ``op`` CLI.

    Args:
        item: 1Password item name or ID

    Returns:
        str: Six-digit MFA code

    Raises:
        MfaTokenUnavailable: If the CLI is missing or the lookup fails
        InvalidInput: If the returned code is not six digits
    """
    logger.debug('Fetching MFA code for 1Password item: %s', item)

    try:
        result = subprocess.run(
            ['op', 'item', 'get', item, '--otp'],
            capture_output=True,
            text=True
        )
    except FileNotFoundError:
        raise MfaTokenUnavailable(
            '1Password CLI not found. Please install the 1Password CLI (op) to fetch MFA codes.'
        )

    if result.returncode != 0:
        raise MfaTokenUnavailable(
            f'1Password lookup failed with exit code {result.returncode}: {result.stderr.strip()}'
        )

    return validate_mfa_token(result.stdout.strip())
