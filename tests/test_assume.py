"""Unit tests for mfa_share.assume module."""

import os
import pytest
from datetime import datetime, timezone
from unittest.mock import patch
from freezegun import freeze_time
from botocore.exceptions import ClientError, NoCredentialsError

from mfa_share.assume import (
    Credentials,
    validate_account_id,
    validate_duration,
    build_session_name,
    classify_assume_role_error,
    assume_role_with_mfa
)
from mfa_share.config import AMBIENT_AWS_ENV_VARS
from mfa_share.errors import AssumeRoleFailed, CredentialExtractionFailed, InvalidInput

from conftest import make_sts_session, make_assume_response

MFA_SERIAL = 'arn:aws:iam::999999999999:mfa/jane.doe'


def client_error(code, message):
    return ClientError({'Error': {'Code': code, 'Message': message}}, 'AssumeRole')


class TestValidation:
    """Tests for input validation helpers."""

    def test_account_id_valid(self):
        """Test A-01: Twelve digits are accepted."""
        assert validate_account_id('123456789012') == '123456789012'

    @pytest.mark.parametrize('account_id', ['12345678901', '1234567890123', '12345678901a', '', None])
    def test_account_id_invalid(self, account_id):
        """Test A-02: Anything but twelve digits is rejected."""
        with pytest.raises(InvalidInput):
            validate_account_id(account_id)

    @pytest.mark.parametrize('duration', [900, 21600, 43200, '3600'])
    def test_duration_valid(self, duration):
        """Test A-03: Bounds are inclusive."""
        assert validate_duration(duration) == int(duration)

    @pytest.mark.parametrize('duration', [899, 43201, 0, -900, 'six hours', None, 3600.5, 43200.9])
    def test_duration_invalid(self, duration):
        """Test A-04: Out of range, non-numeric or fractional durations are rejected."""
        with pytest.raises(InvalidInput):
            validate_duration(duration)


class TestBuildSessionName:
    """Tests for build_session_name() function."""

    @freeze_time("2025-11-24 12:00:00")
    @patch('mfa_share.assume.getpass.getuser')
    def test_session_name_format(self, mock_getuser):
        """Test A-05: User and timestamp are combined into a valid name."""
        mock_getuser.return_value = 'jane doe'

        name = build_session_name()

        assert name.startswith('jane-doe_mfa_session_1763985600_')
        assert len(name) <= 64

    @freeze_time("2025-11-24 12:00:00")
    @patch('mfa_share.assume.getpass.getuser')
    def test_session_names_unique_within_second(self, mock_getuser):
        """Test A-06: Two names in the same second differ."""
        mock_getuser.return_value = 'jane'

        assert build_session_name() != build_session_name()

    @patch('mfa_share.assume.getpass.getuser')
    def test_session_name_without_user(self, mock_getuser):
        """Test A-07: A missing login name falls back to a fixed prefix."""
        mock_getuser.side_effect = KeyError('getpwuid(): uid not found')

        assert build_session_name().startswith('mfa-share_mfa_session_')


    @patch('mfa_share.assume.getpass.getuser')
    def test_session_name_non_ascii_user(self, mock_getuser):
        """Test A-22: Non-ASCII login names are reduced to ASCII characters."""
        mock_getuser.return_value = 'jos\u00e9'

        name = build_session_name()

        assert name.startswith('jos-_mfa_session_')
        assert name.isascii()


class TestClassifyAssumeRoleError:
    """Tests for classify_assume_role_error() function."""

    def test_invalid_client_token(self):
        """Test A-08: Bad base credentials."""
        category, hints = classify_assume_role_error(
            'InvalidClientTokenId: The security token included in the request is invalid.',
            '123456789012', 'Admin'
        )

        assert category == 'invalid_credentials'
        assert any('aws configure' in hint for hint in hints)

    def test_access_denied(self):
        """Test A-09: Role missing or not assumable."""
        category, hints = classify_assume_role_error(
            'AccessDenied: User is not authorized to perform: sts:AssumeRole',
            '123456789012', 'Admin'
        )

        assert category == 'access_denied'
        assert "'Admin'" in hints[0]
        assert '123456789012' in hints[0]

    def test_mfa_rejected(self):
        """Test A-10: MFA failures are reported by STS as AccessDenied."""
        category, hints = classify_assume_role_error(
            'AccessDenied: MultiFactorAuthentication failed with invalid MFA one time pass code.',
            '123456789012', 'Admin'
        )

        assert category == 'mfa'
        assert any('30 seconds' in hint for hint in hints)

    def test_unknown_error(self):
        """Test A-11: Anything else surfaces the raw text."""
        category, hints = classify_assume_role_error(
            'RegionDisabledException: STS is not activated in this region',
            '123456789012', 'Admin'
        )

        assert category == 'unknown'
        assert hints == ['AWS Error: RegionDisabledException: STS is not activated in this region']


class TestAssumeRoleWithMfa:
    """Tests for assume_role_with_mfa() function."""

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_success(self, mock_session):
        """Test A-12: Credentials are returned from the STS response."""
        expiration = datetime(2025, 11, 24, 18, 0, 0, tzinfo=timezone.utc)
        mock_session.return_value, mock_sts = make_sts_session(
            assume_response=make_assume_response(expiration)
        )

        creds = assume_role_with_mfa('123456', '123456789012', 'PowerUserAccess', MFA_SERIAL, 3600)

        assert creds == Credentials(
            access_key_id='ASIANEWEXAMPLE',
            secret_access_key='newSecretKey',
            session_token='newSessionToken',
            expiration=expiration
        )

        mock_sts.assume_role.assert_called_once()
        kwargs = mock_sts.assume_role.call_args[1]
        assert kwargs['RoleArn'] == 'arn:aws:iam::123456789012:role/PowerUserAccess'
        assert kwargs['SerialNumber'] == MFA_SERIAL
        assert kwargs['TokenCode'] == '123456'
        assert kwargs['DurationSeconds'] == 3600
        assert '_mfa_session_' in kwargs['RoleSessionName']

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_role_with_path(self, mock_session):
        """Test A-13: Role paths are kept in the role ARN."""
        mock_session.return_value, mock_sts = make_sts_session(assume_response=make_assume_response())

        assume_role_with_mfa('123456', '210987654321', 'teams/Developer', MFA_SERIAL)

        kwargs = mock_sts.assume_role.call_args[1]
        assert kwargs['RoleArn'] == 'arn:aws:iam::210987654321:role/teams/Developer'
        assert kwargs['DurationSeconds'] == 21600

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_uses_region(self, mock_session):
        """Test A-14: STS client is created in the requested region."""
        mock_session.return_value, _ = make_sts_session(assume_response=make_assume_response())

        assume_role_with_mfa('123456', '123456789012', 'Admin', MFA_SERIAL, region='eu-west-1')

        assert mock_session.call_args[1]['region_name'] == 'eu-west-1'

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_clears_ambient_credentials(self, mock_session, monkeypatch):
        """Test A-15: AWS credential and region variables are removed before the call."""
        monkeypatch.setenv('AWS_PROFILE', 'someone-else')
        monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'AKIAOTHER')
        monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'otherSecret')
        monkeypatch.setenv('AWS_SESSION_TOKEN', 'otherToken')
        monkeypatch.setenv('AWS_SECURITY_TOKEN', 'otherToken')
        monkeypatch.setenv('AWS_REGION', 'ap-south-1')
        monkeypatch.setenv('AWS_DEFAULT_REGION', 'ap-south-1')

        seen_env = {}

        def capture_env(**kwargs):
            seen_env.update({k: os.environ[k] for k in AMBIENT_AWS_ENV_VARS if k in os.environ})
            return make_sts_session(assume_response=make_assume_response())[0]

        mock_session.side_effect = capture_env

        assume_role_with_mfa('123456', '123456789012', 'Admin', MFA_SERIAL)

        assert seen_env == {}

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_invalid_token_makes_no_call(self, mock_session):
        """Test A-16: Validation happens before any AWS call."""
        with pytest.raises(InvalidInput):
            assume_role_with_mfa('12345', '123456789012', 'Admin', MFA_SERIAL)

        mock_session.assert_not_called()

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_invalid_duration_makes_no_call(self, mock_session):
        """Test A-17: Out of range duration is rejected before the call."""
        with pytest.raises(InvalidInput):
            assume_role_with_mfa('123456', '123456789012', 'Admin', MFA_SERIAL, 43201)

        mock_session.assert_not_called()

    @pytest.mark.parametrize('code, message, category', [
        ('InvalidClientTokenId', 'The security token included in the request is invalid.', 'invalid_credentials'),
        ('AccessDenied', 'User is not authorized to perform: sts:AssumeRole', 'access_denied'),
        ('AccessDenied', 'MultiFactorAuthentication failed with invalid MFA one time pass code.', 'mfa'),
        ('ValidationError', 'The requested DurationSeconds exceeds the MaxSessionDuration', 'unknown'),
    ])
    @patch('mfa_share.assume.boto3.Session')
    def test_assume_client_errors(self, mock_session, code, message, category):
        """Test A-18: STS errors become AssumeRoleFailed with a category."""
        mock_session.return_value, mock_sts = make_sts_session()
        mock_sts.assume_role.side_effect = client_error(code, message)

        with pytest.raises(AssumeRoleFailed) as exc_info:
            assume_role_with_mfa('123456', '123456789012', 'Admin', MFA_SERIAL)

        assert exc_info.value.category == category
        assert exc_info.value.kind == 'AssumeRoleFailed'
        assert code in str(exc_info.value)
        # Single attempt
        mock_sts.assume_role.assert_called_once()

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_no_base_credentials(self, mock_session):
        """Test A-19: Missing base credentials are classified as invalid credentials."""
        mock_session.return_value, mock_sts = make_sts_session()
        mock_sts.assume_role.side_effect = NoCredentialsError()

        with pytest.raises(AssumeRoleFailed) as exc_info:
            assume_role_with_mfa('123456', '123456789012', 'Admin', MFA_SERIAL)

        assert exc_info.value.category == 'invalid_credentials'

    @pytest.mark.parametrize('missing, field', [
        ('AccessKeyId', 'access_key_id'),
        ('SecretAccessKey', 'secret_access_key'),
        ('SessionToken', 'session_token'),
        ('Expiration', 'expiration'),
    ])
    @patch('mfa_share.assume.boto3.Session')
    def test_assume_missing_field(self, mock_session, missing, field):
        """Test A-20: A response missing any credential field is rejected."""
        response = make_assume_response()
        response['Credentials'][missing] = None
        mock_session.return_value, _ = make_sts_session(assume_response=response)

        with pytest.raises(CredentialExtractionFailed) as exc_info:
            assume_role_with_mfa('123456', '123456789012', 'Admin', MFA_SERIAL)

        assert f'missing: {field}' in str(exc_info.value)

    @patch('mfa_share.assume.boto3.Session')
    def test_assume_no_credentials_block(self, mock_session):
        """Test A-21: A response without a Credentials block is rejected."""
        mock_session.return_value, _ = make_sts_session(assume_response={'AssumedRoleUser': {}})

        with pytest.raises(CredentialExtractionFailed):
            assume_role_with_mfa('123456', '123456789012', 'Admin', MFA_SERIAL)
