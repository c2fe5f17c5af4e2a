"""MFA Share - assume AWS roles with MFA and store the temporary credentials."""

__version__ = "1.0.0"

from .profiles import find_profile, list_usable_profiles, parse_config
from .refresh import resolve_and_maybe_reuse

__all__ = ["find_profile", "list_usable_profiles", "parse_config", "resolve_and_maybe_reuse"]
