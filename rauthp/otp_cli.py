#!/usr/bin/env python3
"""
otp_cli.py — command line front end for rauthp.

Subcommands:
- gen  : print the current TOTP code of every stored account
- add  : register an account (NAME + Base32 SECRET)
- del  : delete an account
- list : print the stored account names
- uri  : print the otpauth:// URI of an account (re-import elsewhere)

Exit code is 0 when the command fully succeeded, 1 otherwise.
"""

import argparse
import logging
import sys

from . import otp_core
from .config import MAX_DIGITS, NAME_WIDTH, load_settings
from .exceptions import CryptoError, RauthpError, ValidationError
from .secret_store import SecretStore, open_store

logger = logging.getLogger(__name__)


# --- CLI command handlers ---
def cmd_gen(store, args, settings) -> bool:
    digits = args.digits or settings.digits
    interval = args.interval or settings.interval

    try:
        secrets = store.list_all()
    except RauthpError as e:
        print(f"Failed to generate the codes: {e}", file=sys.stderr)
        return False

    print(f"{len(secrets)} secrets found")
    failures = 0
    for secret in secrets:
        try:
            key = otp_core.decode_secret(secret.value)
            code = otp_core.generate(key, interval, digits)
        except ValidationError as e:
            print(
                f"{secret.name:<{NAME_WIDTH}}: Failed to decode the secret returned by the keyring: {e}",
                file=sys.stderr,
            )
            failures += 1
            continue
        except CryptoError as e:
            logger.debug("Generation failed for %r: %s", secret.name, e)
            print(f"{secret.name:<{NAME_WIDTH}}: Code generation error", file=sys.stderr)
            failures += 1
            continue
        print(f"{secret.name:<{NAME_WIDTH}}: {code}")
    return failures == 0


def cmd_add(store, args, settings) -> bool:
    secret = args.secret.upper()
    if not otp_core.is_valid_base32(secret):
        print("Invalid secret format, should be a valid base32 string", file=sys.stderr)
        return False

    try:
        store.store(args.name, secret)
    except RauthpError as e:
        print(f"Failed to add the secret to the keyring: {e}", file=sys.stderr)
        return False
    print("Secret added")
    return True


def cmd_del(store, args, settings) -> bool:
    try:
        store.delete(args.name)
    except RauthpError as e:
        print(f"Failed to delete the secret: {e}", file=sys.stderr)
        return False
    print("Secret deleted")
    return True


def cmd_list(store, args, settings) -> bool:
    try:
        secrets = store.list_all()
    except RauthpError as e:
        print(f"Failed to list the secrets: {e}", file=sys.stderr)
        return False
    for name in sorted(s.name for s in secrets):
        print(name)
    return True


def cmd_uri(store, args, settings) -> bool:
    try:
        secret = store.get(args.name)
        if secret is None:
            print(f"No secret named '{args.name}'", file=sys.stderr)
            return False
        uri = otp_core.format_otpauth_uri(
            secret.value,
            account=args.name,
            issuer=args.issuer,
            digits=args.digits or settings.digits,
            period=args.interval or settings.interval,
        )
    except RauthpError as e:
        print(f"Failed to build the URI: {e}", file=sys.stderr)
        return False
    print(uri)
    return True


# --- Argparse builder ---
def _digits(value: str) -> int:
    digits = int(value)
    if not 1 <= digits <= MAX_DIGITS:
        raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_DIGITS}")
    return digits


def _interval(value: str) -> int:
    interval = int(value)
    if interval <= 0:
        raise argparse.ArgumentTypeError("must be a positive number of seconds")
    return interval


def _add_code_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--digits", type=_digits, help="Override number of digits")
    parser.add_argument("--interval", type=_interval, help="Override TOTP period (seconds)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rauthp", description="CLI TOTP generator")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output on stderr")
    sub = p.add_subparsers(dest="cmd", metavar="COMMAND", required=True)

    pg = sub.add_parser("gen", help="Generate TOTP codes")
    _add_code_options(pg)
    pg.set_defaults(func=cmd_gen)

    pa = sub.add_parser("add", help="Register an account")
    pa.add_argument("name", metavar="NAME", help="Account name")
    pa.add_argument("secret", metavar="SECRET", help="Base32 encoded secret")
    pa.set_defaults(func=cmd_add)

    pd = sub.add_parser("del", help="Delete an account")
    pd.add_argument("name", metavar="NAME", help="Account name")
    pd.set_defaults(func=cmd_del)

    pl = sub.add_parser("list", help="List registered accounts")
    pl.set_defaults(func=cmd_list)

    pu = sub.add_parser("uri", help="Print the otpauth URI of an account")
    pu.add_argument("name", metavar="NAME", help="Account name")
    pu.add_argument("--issuer", help="Issuer label for the otpauth URI")
    _add_code_options(pu)
    pu.set_defaults(func=cmd_uri)

    return p


def configure_logging(verbose: bool, level: str) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None, backend=None) -> int:
    """
    Parse `argv`, connect to the keyring and run one command.

    `backend` replaces the configured backend (the tests pass a MemoryBackend).
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    configure_logging(args.verbose, settings.log_level)

    try:
        store = SecretStore(backend) if backend is not None else open_store(settings.backend)
    except RauthpError as e:
        print(f"Failed to connect to the keyring: {e}", file=sys.stderr)
        return 1

    try:
        with store:
            ok = args.func(store, args, settings)
    except RauthpError as e:
        print(f"Failed to close the keyring: {e}", file=sys.stderr)
        return 1
    return 0 if ok else 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
