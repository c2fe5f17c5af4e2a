"""AWS config profile discovery and role resolution."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .config import get_aws_config_path
from .errors import ConfigNotFound, ProfileNotFound, ProfileIncomplete

logger = logging.getLogger(__name__)

PROFILE_HEADER_RE = re.compile(r'^\s*\[profile\s+([^\]]+?)\s*\]')
DEFAULT_HEADER_RE = re.compile(r'^\s*\[default\]')
OTHER_HEADER_RE = re.compile(r'^\s*\[[^\]]*\]')
ROLE_ARN_RE = re.compile(r'^\s*role_arn\s*=\s*arn:aws:iam::([0-9]{12}):role/(.+?)\s*$')
REGION_RE = re.compile(r'^\s*region\s*=[ \t]*(\S.*?)\s*$')
SOURCE_PROFILE_RE = re.compile(r'^\s*source_profile\s*=[ \t]*(\S.*?)\s*$')
MFA_SERIAL_RE = re.compile(r'^\s*mfa_serial\s*=[ \t]*(\S.*?)\s*$')


@dataclass
class Profile:
    name: str
    account_id: Optional[str] = None
    role_name: Optional[str] = None
    region: Optional[str] = None
    source_profile: Optional[str] = None

    @property
    def is_usable(self):
        return bool(self.account_id and self.role_name)

    @property
    def role_arn(self):
        if not self.is_usable:
            return None
        return f'arn:aws:iam::{self.account_id}:role/{self.role_name}'


@dataclass
class ParsedConfig:
    profiles: List[Profile]
    mfa_serial: Optional[str] = None

    def get(self, name):
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None


def parse_config(path=None):
    """
    Parse an AWS config file into profile records.

    Only the keys used for role assumption are read: ``role_arn``, ``region``,
    ``source_profile`` inside ``[profile <name>]`` / ``[default]`` sections and
    the first ``mfa_serial`` anywhere in the file. Everything else is ignored.

    Args:
        path: Config file path (defaults to AWS_CONFIG_FILE or ~/.aws/config)

    Returns:
        ParsedConfig: Profiles in file order plus the file-wide MFA serial

    Raises:
        ConfigNotFound: If the file does not exist
    """
    config_path = get_aws_config_path(path)

    if not config_path.exists():
        raise ConfigNotFound(f'AWS config file not found: {config_path}')

    profiles = {}
    current = None
    mfa_serial = None

    with open(config_path, 'r', encoding='utf-8') as f:
        for line in f:
            match = PROFILE_HEADER_RE.match(line)
            if match or DEFAULT_HEADER_RE.match(line):
                name = match.group(1) if match else 'default'
                # A repeated section keeps filling the same record
                current = profiles.setdefault(name, Profile(name=name))
                continue

            if OTHER_HEADER_RE.match(line):
                current = None
                continue

            match = MFA_SERIAL_RE.match(line)
            if match:
                if mfa_serial is None:
                    mfa_serial = match.group(1)
                continue

            if current is None:
                continue

            match = ROLE_ARN_RE.match(line)
            if match:
                current.account_id, current.role_name = match.group(1), match.group(2)
                continue

            match = REGION_RE.match(line)
            if match:
                current.region = match.group(1)
                continue

            match = SOURCE_PROFILE_RE.match(line)
            if match:
                current.source_profile = match.group(1)

    logger.debug('Parsed %d profile(s) from %s', len(profiles), config_path)
    return ParsedConfig(profiles=list(profiles.values()), mfa_serial=mfa_serial)


def find_profile(name, path=None):
    """
    Look up a profile that can be used for role assumption.

    Raises:
        ConfigNotFound: If the config file does not exist
        ProfileNotFound: If no section named ``name`` exists
        ProfileIncomplete: If the section has no usable role_arn
    """
    config_path = get_aws_config_path(path)
    logger.debug('Looking for profile: %s', name)

    profile = parse_config(config_path).get(name)

    if profile is None:
        raise ProfileNotFound(
            f"Profile '{name}' not found in {config_path}",
            hints=['Use --list-profiles to see available profiles'],
        )

    if not profile.is_usable:
        raise ProfileIncomplete(f"Profile '{name}' missing role_arn")

    logger.debug('Found account: %s, role: %s', profile.account_id, profile.role_name)
    return profile


def list_usable_profiles(path=None):
    """Get profiles that have a role_arn, in file order."""
    return [
        {
            'name': profile.name,
            'account_id': profile.account_id,
            'role_name': profile.role_name,
            'region': profile.region,
        }
        for profile in parse_config(path).profiles
        if profile.is_usable
    ]
