"""Paths and defaults for MFA role assumption."""

import os
from pathlib import Path

DEFAULT_REGION = 'us-east-1'
SESSION_DURATION = 21600  # 6 hours
MIN_SESSION_DURATION = 900  # 15 minutes
MAX_SESSION_DURATION = 43200  # 12 hours
OUTPUT_PROFILE_PREFIX = 'temp-'

MFA_SERIAL_ENV = 'AWS_MFA_SERIAL'

# Cleared before assuming a role so the call cannot run as an already-active identity
AMBIENT_AWS_ENV_VARS = (
    'AWS_PROFILE',
    'AWS_ACCESS_KEY_ID',
    'AWS_SECRET_ACCESS_KEY',
    'AWS_SESSION_TOKEN',
    'AWS_REGION',
    'AWS_DEFAULT_REGION',
    'AWS_SECURITY_TOKEN',
)


def get_aws_config_path(path=None):
    """Return the AWS config file path (argument, then AWS_CONFIG_FILE, then ~/.aws/config)."""
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get('AWS_CONFIG_FILE')
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / '.aws' / 'config'


def get_aws_credentials_path(path=None):
    """Return the credentials file path (argument, then AWS_SHARED_CREDENTIALS_FILE, then ~/.aws/credentials)."""
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get('AWS_SHARED_CREDENTIALS_FILE')
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / '.aws' / 'credentials'


def get_default_region():
    """Region from the environment, falling back to DEFAULT_REGION."""
    return os.environ.get('AWS_REGION') or os.environ.get('AWS_DEFAULT_REGION') or DEFAULT_REGION


def output_profile_name(profile_name=None, role_name=None):
    """
    Derive the credentials section name for a run.

    Profile mode writes to ``temp-<profile>``, manual mode to ``temp-<role>``.
    """
    if profile_name:
        return f'{OUTPUT_PROFILE_PREFIX}{profile_name}'
    return f'{OUTPUT_PROFILE_PREFIX}{role_name.replace("/", "-")}'
