"""Error types raised while resolving and assuming a role."""


class MfaShareError(Exception):
    """Base error. ``kind`` names the failure, ``hints`` are things for the user to check."""

    kind = 'Error'

    def __init__(self, message, hints=None):
        super().__init__(message)
        self.message = message
        self.hints = list(hints or [])


class ConfigNotFound(MfaShareError):
    kind = 'ConfigNotFound'


class ProfileNotFound(MfaShareError):
    kind = 'ProfileNotFound'


class ProfileIncomplete(MfaShareError):
    kind = 'ProfileIncomplete'


class InvalidInput(MfaShareError):
    kind = 'InvalidInput'


class MfaSerialUndetectable(MfaShareError):
    kind = 'MfaSerialUndetectable'


class MfaTokenUnavailable(MfaShareError):
    kind = 'MfaTokenUnavailable'


class AssumeRoleFailed(MfaShareError):
    """Assume-role call rejected. ``category`` selects the hints shown."""

    kind = 'AssumeRoleFailed'

    def __init__(self, message, category='unknown', hints=None):
        super().__init__(message, hints)
        self.category = category


class CredentialExtractionFailed(MfaShareError):
    kind = 'CredentialExtractionFailed'


class ExpiryUnparseable(MfaShareError):
    kind = 'ExpiryUnparseable'
