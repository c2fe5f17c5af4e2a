"""End-to-end flow: resolve the target role, reuse cached credentials or assume the role."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .assume import assume_role_with_mfa, build_session_name, validate_account_id, validate_duration
from .checker import credentials_are_valid
from .config import SESSION_DURATION, get_default_region, output_profile_name
from .credentials import get_credential_age, get_time_remaining
from .errors import ExpiryUnparseable, InvalidInput, MfaShareError
from .mfa import detect_mfa_serial, get_mfa_token_from_op, validate_mfa_token
from .profiles import find_profile
from .store import write_credentials_to_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTarget:
    account_id: str
    role_name: str
    region: str
    output_profile: str
    profile_name: Optional[str] = None
    source_profile: Optional[str] = None


def resolve_target(profile_name=None, account_id=None, role_name=None, config_path=None):
    """
    Work out which account and role a run targets.

    Profile mode reads ``role_arn`` and ``region`` from the AWS config file;
    manual mode takes the account ID and role name as given.

    Raises:
        InvalidInput: If neither mode has enough input or the account ID is malformed
        ConfigNotFound, ProfileNotFound, ProfileIncomplete: From the profile lookup
    """
    if profile_name:
        profile = find_profile(profile_name, config_path)
        return ResolvedTarget(
            account_id=profile.account_id,
            role_name=profile.role_name,
            region=profile.region or get_default_region(),
            output_profile=output_profile_name(profile_name=profile_name),
            profile_name=profile_name,
            source_profile=profile.source_profile,
        )

    if not account_id or not role_name:
        raise InvalidInput(
            'Missing required arguments',
            hints=[
                'Manual mode requires: <MFA_TOKEN> <ACCOUNT_ID> <ROLE_NAME>',
                'Or use profile mode: --profile <PROFILE_NAME> <MFA_TOKEN>',
            ],
        )

    validate_account_id(account_id)
    return ResolvedTarget(
        account_id=account_id,
        role_name=role_name,
        region=get_default_region(),
        output_profile=output_profile_name(role_name=role_name),
    )


def _describe_expiration(expiration):
    try:
        remaining = get_time_remaining(expiration)
    except ExpiryUnparseable as e:
        logger.debug('%s', e)
        return None

    if remaining['expired']:
        logger.warning('Credentials appear to be already expired')
    else:
        logger.info('Time remaining: %s', remaining['expires_in'])
    return remaining['expires_in']


def _base_result(target):
    return {
        'success': True,
        'reused': False,
        'dry_run': False,
        'output_profile': target.output_profile,
        'account_id': target.account_id,
        'role_name': target.role_name,
        'region': target.region,
        'expiration': None,
        'expires_in': None,
        'warning': None,
    }


def _failure(error):
    logger.debug('Run failed (%s): %s', error.kind, error.message)
    return {
        'success': False,
        'error': error.kind,
        'message': error.message,
        'hints': error.hints,
    }


def resolve_and_maybe_reuse(profile_name=None, account_id=None, role_name=None,
                            mfa_token=None, op_item=None, duration=SESSION_DURATION,
                            config_path=None, credentials_path=None, dry_run=False):
    """
    Get working credentials for a role, reusing cached ones when possible.

    Args:
        profile_name: AWS config profile to read the role from (profile mode)
        account_id: 12-digit account ID (manual mode)
        role_name: Role to assume (manual mode)
        mfa_token: Six-digit MFA code, if already known
        op_item: 1Password item to fetch the MFA code from when no token is given
        duration: Session duration in seconds
        config_path: AWS config file override
        credentials_path: Credentials file override
        dry_run: Validate everything but do not assume the role or write credentials

    Returns:
        dict: Result with success status. On success: ``reused``,
        ``output_profile``, ``account_id``, ``role_name``, ``region``,
        ``expiration``, ``expires_in`` and ``warning`` (set when the
        credentials could not be saved). On failure: ``error``, ``message``
        and ``hints``.
    """
    try:
        if mfa_token is not None:
            validate_mfa_token(mfa_token)
        duration = validate_duration(duration)
        target = resolve_target(profile_name, account_id, role_name, config_path)
    except MfaShareError as e:
        return _failure(e)

    logger.debug('Account ID: %s', target.account_id)
    logger.debug('Role Name: %s', target.role_name)
    logger.debug('Region: %s', target.region)
    if target.source_profile:
        logger.debug('Source profile: %s', target.source_profile)

    result = _base_result(target)

    if credentials_are_valid(target.output_profile, target.account_id, target.role_name,
                             credentials_path, region=target.region):
        logger.info("Reusing valid cached credentials in profile '%s'", target.output_profile)
        result['reused'] = True
        result['credential_age'] = get_credential_age(credentials_path)
        return result

    try:
        mfa_serial = detect_mfa_serial(config_path)

        if dry_run:
            logger.info('[DRY-RUN] Would assume role with:')
            logger.info('  Role ARN: arn:aws:iam::%s:role/%s', target.account_id, target.role_name)
            logger.info('  Session Name: %s', build_session_name())
            logger.info('  MFA Serial: %s', mfa_serial)
            logger.info('  Duration: %s seconds', duration)
            result['dry_run'] = True
            return result

        if mfa_token is None:
            if not op_item:
                raise InvalidInput('Missing required argument: MFA_TOKEN')
            mfa_token = get_mfa_token_from_op(op_item)

        credentials = assume_role_with_mfa(
            mfa_token,
            target.account_id,
            target.role_name,
            mfa_serial,
            duration_seconds=duration,
            region=target.region,
        )
    except MfaShareError as e:
        return _failure(e)

    expiration = credentials.expiration
    result['expiration'] = expiration.isoformat() if isinstance(expiration, datetime) else str(expiration)
    logger.info('Credentials expire at: %s', result['expiration'])
    result['expires_in'] = _describe_expiration(credentials.expiration)

    write_result = write_credentials_to_profile(target.output_profile, credentials, path=credentials_path)
    if not write_result['success']:
        logger.warning('Failed to write credentials to profile (non-fatal): %s', write_result['message'])
        result['warning'] = write_result['message']

    return result
