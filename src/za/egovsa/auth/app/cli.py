import argparse
import asyncio
import base64
import json
import logging
import os
import sys
from logging.config import dictConfig
from typing import Any, Dict, List, Optional

from cryptography.fernet import Fernet

from za.egovsa.auth.app.config import Settings
from za.egovsa.auth.app.context import AuthContext
from za.egovsa.auth.errors import AuthError, PinMismatch, SecureStorageFailure

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False):
    logging_config_file = os.getenv("LOGGING_CONFIG_FILE", "")

    if len(logging_config_file) > 0:
        with open(logging_config_file) as fl:
            dictConfig(json.load(fl))
        return

    logging.basicConfig()
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="egovsa-auth", description="Inspect and drive the eGovSA auth core"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("launch", help="Print the launch decision.")
    commands.add_parser("whoami", help="Print the current session and profile.")
    commands.add_parser("welcome", help="Fetch the backend welcome message.")

    otp_send = commands.add_parser("otp-send", help="Send a one-time passcode.")
    otp_send.add_argument("email")
    otp_send.add_argument(
        "--existing-only",
        action="store_true",
        help="Do not create a user for an unknown email (PIN recovery).",
    )

    otp_verify = commands.add_parser("otp-verify", help="Verify a one-time passcode.")
    otp_verify.add_argument("email")
    otp_verify.add_argument("code")

    register = commands.add_parser(
        "register", help="Complete registration after OTP verification."
    )
    register.add_argument("first_name")
    register.add_argument("last_name")
    register.add_argument("email")
    register.add_argument("pin")

    unlock = commands.add_parser("unlock", help="Unlock with the local PIN.")
    unlock.add_argument("pin")

    reset_pin = commands.add_parser("reset-pin", help="Set a new PIN.")
    reset_pin.add_argument("pin")

    sign_out = commands.add_parser("sign-out", help="Sign out.")
    sign_out.add_argument(
        "--hard", action="store_true", help="Also clear the stored PIN and email."
    )

    commands.add_parser("clear-credentials", help="Clear the stored PIN and email.")
    commands.add_parser("gen-crypto-key", help="Generate an ENCRYPTION_KEY value.")

    return parser


def describe(context: AuthContext) -> Dict[str, Any]:
    session = context.session
    user = context.user
    return {
        "state": context.state.value if context.state is not None else None,
        "session": (
            {
                "user_id": session.user_id,
                "email": session.email,
                "expires_at": session.expires_at.isoformat(),
            }
            if session is not None
            else None
        ),
        "user": user.model_dump(mode="json") if user is not None else None,
    }


async def run_command(context: AuthContext, args: argparse.Namespace) -> int:
    command = args.command

    if command == "launch":
        await context.launch()
    elif command == "whoami":
        pass
    elif command == "welcome":
        welcome = await context.welcome()
        print(welcome.message)
        return 0
    elif command == "otp-send":
        await context.request_otp(email=args.email, create_user=not args.existing_only)
        print(f"A 6-digit code was sent to {args.email}")
        return 0
    elif command == "otp-verify":
        await context.verify_otp(args.code, email=args.email)
    elif command == "register":
        await context.complete_registration(
            args.first_name, args.last_name, args.email, args.pin
        )
    elif command == "unlock":
        await context.launch()
        await context.unlock(args.pin)
    elif command == "reset-pin":
        await context.reset_pin(args.pin)
    elif command == "sign-out":
        await context.sign_out(hard_reset=args.hard)
    elif command == "clear-credentials":
        await context.clear_credentials()

    print(json.dumps(describe(context), indent=2))
    return 0


async def realMain(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "gen-crypto-key":
        key = Fernet.generate_key()
        print(base64.b64encode(key).decode("utf-8"))
        return 0

    settings = Settings()  # type: ignore
    configure_logging(settings.debug)

    from za.egovsa.auth.app.runtime import auth_context

    try:
        async with auth_context(settings) as context:
            return await run_command(context, args)
    except PinMismatch:
        print("Incorrect PIN, please try again", file=sys.stderr)
        return 2
    except SecureStorageFailure:
        logger.exception("Secure storage failure")
        print("Secure storage is unavailable or corrupted", file=sys.stderr)
        return 3
    except (AuthError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def invoke() -> None:
    sys.exit(asyncio.run(realMain()))


if __name__ == "__main__":
    invoke()
