"""Reading and updating the shared AWS credentials file."""

import configparser
import logging
import os
import tempfile
import time

from .config import get_aws_credentials_path

logger = logging.getLogger(__name__)

CREDENTIAL_KEYS = ('aws_access_key_id', 'aws_secret_access_key', 'aws_session_token')


def read_profile_credentials(profile_name, path=None):
    """
    Get the stored credentials for a profile.

    Returns:
        dict: Section keys and values, or None if the file or section is missing
    """
    credentials_path = get_aws_credentials_path(path)

    if not credentials_path.exists():
        return None

    # strict=False tolerates duplicated sections left behind by hand edits
    config = configparser.RawConfigParser(strict=False)
    try:
        config.read(credentials_path)
    except configparser.Error as e:
        logger.debug('Could not parse %s: %s', credentials_path, e)
        return None

    if profile_name not in config.sections():
        return None

    return dict(config[profile_name])


def _ensure_private_file(credentials_path):
    aws_dir = credentials_path.parent
    if not aws_dir.exists():
        logger.debug('Creating AWS credentials directory: %s', aws_dir)
        aws_dir.mkdir(parents=True)
        aws_dir.chmod(0o700)

    if not credentials_path.exists():
        logger.debug('Creating AWS credentials file: %s', credentials_path)
        fd = os.open(credentials_path, os.O_WRONLY | os.O_CREAT, 0o600)
        os.close(fd)
    credentials_path.chmod(0o600)


def _line_ending(lines):
    for line in lines:
        if line.endswith('\r\n'):
            return '\r\n'
        if line.endswith('\n'):
            return '\n'
    return '\n'


def _merge_section(lines, section_name, section_lines, newline='\n'):
    header = f'[{section_name}]'
    merged = []
    in_section = False
    found = False
    dropped_blank = False

    for line in lines:
        stripped = line.strip()
        is_header = stripped.startswith('[') and stripped.endswith(']')

        if is_header and stripped == header:
            # Later duplicates of the section are dropped entirely
            if not found:
                merged.extend(section_lines)
                found = True
            in_section = True
            dropped_blank = False
            continue

        if is_header and in_section:
            in_section = False
            if dropped_blank:
                merged.append(newline)

        if in_section:
            dropped_blank = not stripped
            continue

        # Lines outside the target section are kept byte for byte
        merged.append(line)

    if in_section and dropped_blank:
        merged.append(newline)

    if not found:
        if merged:
            if not merged[-1].endswith('\n'):
                merged[-1] += newline
            merged.append(newline)
        merged.extend(section_lines)

    return merged


def _write_backup(credentials_path, content):
    backup_path = credentials_path.with_name(f'{credentials_path.name}.backup.{int(time.time())}')
    fd = os.open(backup_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
        f.write(content)
    return backup_path


def upsert_section(section_name, key_values, path=None):
    """
    Replace (or append) one section of the credentials file.

    Every other section is copied through unchanged. The new file is written
    to a temporary file next to the original and renamed into place, with
    owner-only permissions on both the file and a newly created directory.

    Args:
        section_name: Section to write, e.g. ``temp-production``
        key_values: Ordered mapping of keys to values for the section
        path: Credentials file (defaults to AWS_SHARED_CREDENTIALS_FILE or ~/.aws/credentials)

    Returns:
        dict: Result with success status, path and message; ``backup_file`` is
        set when the rename failed but the new content was saved elsewhere
    """
    credentials_path = get_aws_credentials_path(path)

    try:
        _ensure_private_file(credentials_path)
        # newline='' keeps CRLF and a missing final newline intact
        with open(credentials_path, 'r', encoding='utf-8', newline='') as f:
            existing = f.readlines()
    except OSError as e:
        return {
            'success': False,
            'path': str(credentials_path),
            'message': f'Failed to prepare credentials file: {e}'
        }

    newline = _line_ending(existing)
    section_lines = [f'[{section_name}]{newline}'] + [
        f'{key} = {value}{newline}' for key, value in key_values.items()
    ]
    content = ''.join(_merge_section(existing, section_name, section_lines, newline))

    tmp_name = None
    try:
        tmp_fd, tmp_name = tempfile.mkstemp(dir=credentials_path.parent, prefix='.credentials-')
        os.fchmod(tmp_fd, 0o600)
        with os.fdopen(tmp_fd, 'w', encoding='utf-8', newline='') as f:
            f.write(content)
        os.replace(tmp_name, credentials_path)
        # The rename carries the temp file's mode, not the original's
        credentials_path.chmod(0o600)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        try:
            backup_path = _write_backup(credentials_path, content)
        except OSError:
            return {
                'success': False,
                'path': str(credentials_path),
                'message': f'Failed to update credentials file and create backup: {e}'
            }
        return {
            'success': False,
            'path': str(credentials_path),
            'backup_file': str(backup_path),
            'message': f'Failed to update credentials file: {e}. Credentials saved to backup: {backup_path}'
        }

    logger.info("Credentials written to profile '%s' in %s", section_name, credentials_path)
    return {
        'success': True,
        'path': str(credentials_path),
        'message': f"Credentials written to profile '{section_name}' in {credentials_path}"
    }


def write_credentials_to_profile(profile_name, credentials, path=None):
    """Store assumed-role credentials under ``profile_name`` with the three standard keys."""
    logger.info('Writing credentials to profile: %s', profile_name)
    key_values = {
        'aws_access_key_id': credentials.access_key_id,
        'aws_secret_access_key': credentials.secret_access_key,
        'aws_session_token': credentials.session_token,
    }
    return upsert_section(profile_name, key_values, path=path)
