"""Checks whether cached credentials already belong to the requested role."""

import logging
import re

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import get_default_region
from .store import read_profile_credentials

logger = logging.getLogger(__name__)

ASSUMED_ROLE_ARN_RE = re.compile(r'^arn:[^:]+:sts::([0-9]{12}):assumed-role/([^/]+)/(.+)$')


def parse_assumed_role_arn(arn):
    """
    Split an assumed-role ARN into its parts.

    Returns:
        tuple: (account_id, role_name, session_name), or None for any other ARN shape
    """
    match = ASSUMED_ROLE_ARN_RE.match(arn or '')
    if not match:
        return None
    return match.groups()


def credentials_are_valid(profile_name, account_id, role_name, credentials_path=None, region=None):
    """
    Check if a stored profile still holds working credentials for a role.

    The stored keys are used for a caller-identity lookup; any failure there
    counts as "not valid" rather than an error.

    Args:
        profile_name: Credentials file section to check
        account_id: Expected 12-digit account ID
        role_name: Expected role name (compared exactly)
        credentials_path: Credentials file (defaults to AWS_SHARED_CREDENTIALS_FILE or ~/.aws/credentials)
        region: Region for the STS client

    Returns:
        bool: True if the cached credentials can be reused
    """
    stored = read_profile_credentials(profile_name, credentials_path)
    if not stored:
        logger.debug("No cached credentials for profile '%s'", profile_name)
        return False

    access_key = stored.get('aws_access_key_id')
    secret_key = stored.get('aws_secret_access_key')
    if not access_key or not secret_key:
        return False

    try:
        session = boto3.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            aws_session_token=stored.get('aws_session_token') or None,
            region_name=region or get_default_region(),
        )
        identity = session.client('sts').get_caller_identity()
    except (BotoCoreError, ClientError) as e:
        logger.debug("Cached credentials for '%s' rejected: %s", profile_name, e)
        return False

    parsed = parse_assumed_role_arn(identity.get('Arn'))
    if parsed is None:
        logger.debug("Cached identity for '%s' is not an assumed role", profile_name)
        return False

    cached_account, cached_role, _ = parsed
    if cached_account != account_id or cached_role != role_name:
        logger.debug(
            "Cached credentials for '%s' are for %s/%s, not %s/%s",
            profile_name, cached_account, cached_role, account_id, role_name
        )
        return False

    return True
