"""Command-line interface for MFA role assumption."""

import sys
import argparse
import logging
import shutil
from tabulate import tabulate

from .config import SESSION_DURATION, MIN_SESSION_DURATION, MAX_SESSION_DURATION, get_aws_config_path
from .errors import ConfigNotFound
from .profiles import list_usable_profiles
from .refresh import resolve_and_maybe_reuse


def print_banner(title):
    terminal_width = shutil.get_terminal_size().columns
    print(f"\n{title}")
    print("=" * min(80, terminal_width))
    print()


def list_profiles(config_path=None):
    """List AWS config profiles that define a role_arn."""
    aws_config = get_aws_config_path(config_path)

    print_banner("📋 Available AWS Config Profiles")

    try:
        profiles = list_usable_profiles(aws_config)
    except ConfigNotFound as e:
        print(f"❌ {e}")
        return 1

    if not profiles:
        print(f"⚠️  No profiles with role_arn found in {aws_config}")
        return 0

    table_data = [
        [p['name'], p['account_id'], p['role_name'], p['region'] or '-']
        for p in profiles
    ]
    headers = ['Profile', 'Account ID', 'Role Name', 'Region']
    print(tabulate(table_data, headers=headers, tablefmt='fancy_grid'))
    print()
    print(f"✓ Found {len(profiles)} profile(s)")
    print("   Usage: mfa-share --profile <PROFILE_NAME> <MFA_TOKEN>\n")
    return 0


def print_result(result):
    """Print the outcome of a run. Returns the exit code."""
    if not result['success']:
        print(f"❌ Failed! ({result['error']})")
        print(f"   {result['message']}")
        if result['hints']:
            print("\n   What to check:")
            for hint in result['hints']:
                print(f"   • {hint}")
        print()
        return 1

    if result['dry_run']:
        print("✅ [DRY-RUN] Configuration validation passed")
        print()
        return 0

    if result['reused']:
        print(f"✅ Cached credentials in '{result['output_profile']}' are still valid "
              f"for {result['role_name']} in {result['account_id']}")
        print(f"   Age: {result.get('credential_age', 'N/A')}")
    else:
        print("✅ Success! AWS credentials configured")
        print(f"   Role:    {result['role_name']} ({result['account_id']})")
        print(f"   Expires: {result['expiration']}")
        if result['expires_in']:
            print(f"   Time remaining: {result['expires_in']}")
        if result['warning']:
            print(f"\n⚠️  Warning: {result['warning']}")

    print()
    print("What's next?")
    print(f"   export AWS_PROFILE={result['output_profile']}")
    print("   aws sts get-caller-identity")
    print()
    return 0


def main(argv=None):
    """Main function to parse arguments and route to appropriate command."""
    parser = argparse.ArgumentParser(
        description='Assume an AWS role with MFA and store the temporary credentials',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mfa-share --list-profiles                       # List profiles with a role_arn
  mfa-share --profile production 123456           # Profile mode
  mfa-share --profile staging 123456 -t 43200     # Profile mode, 12 hour session
  mfa-share --profile production --op-item AWS    # MFA code from 1Password
  mfa-share 123456 123456789012 AdminRole         # Manual mode
        """
    )

    parser.add_argument('args', nargs='*', metavar='ARG',
                        help='MFA_TOKEN (profile mode) or MFA_TOKEN ACCOUNT_ID ROLE_NAME (manual mode)')
    parser.add_argument('--profile', metavar='NAME', help='Use AWS config profile (recommended)')
    parser.add_argument('-p', '--list-profiles', action='store_true',
                        help='List available AWS config profiles')
    parser.add_argument('-a', '--aws-config', metavar='FILE',
                        help='Use custom AWS config file (default: ~/.aws/config)')
    parser.add_argument('-t', '--duration', type=int, default=SESSION_DURATION, metavar='SECONDS',
                        help=f'Session duration in seconds ({MIN_SESSION_DURATION}-{MAX_SESSION_DURATION}, '
                             f'default: {SESSION_DURATION})')
    parser.add_argument('--op-item', metavar='ITEM',
                        help='Read the MFA code from this 1Password item when no token is given')
    parser.add_argument('-d', '--dry-run', action='store_true',
                        help='Validate configuration without assuming role')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='[%(levelname)s] %(message)s',
        stream=sys.stderr,
    )

    if args.list_profiles:
        return list_profiles(args.aws_config)

    positional = args.args
    if args.profile:
        if len(positional) > 1:
            parser.error('profile mode takes a single MFA_TOKEN')
        options = {'profile_name': args.profile, 'mfa_token': positional[0] if positional else None}
    else:
        if len(positional) != 3:
            parser.error('manual mode requires MFA_TOKEN ACCOUNT_ID ROLE_NAME')
        options = {'mfa_token': positional[0], 'account_id': positional[1], 'role_name': positional[2]}

    print_banner("🔑 AWS MFA Role Assumption")

    result = resolve_and_maybe_reuse(
        duration=args.duration,
        op_item=args.op_item,
        config_path=args.aws_config,
        dry_run=args.dry_run,
        **options
    )
    return print_result(result)


if __name__ == '__main__':
    sys.exit(main())
