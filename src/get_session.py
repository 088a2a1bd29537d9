"""Telegram session handling for codescope.

Builds the Telethon client from .env credentials and walks the user through
an interactive login (QR code or phone code) the first time a session file is
created. Later runs reuse the saved session without prompting.
"""

import asyncio
import logging
import os
import sys
from getpass import getpass

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)

QR_LOGIN_TIMEOUT = 120


class LoginError(RuntimeError):
    """Raised when the account cannot be authorized."""


def build_client() -> TelegramClient:
    """Create a Telethon client from API_ID/API_HASH/SESSION_NAME.

    Missing credentials fail fast to avoid an ambiguous login prompt.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "codescope")
    if not api_id or not api_hash:
        raise LoginError("Missing API_ID or API_HASH in environment")
    try:
        parsed_id = int(api_id)
    except ValueError as e:
        raise LoginError(f"API_ID must be numeric, got {api_id!r}") from e

    LOGGER.info("Initializing Telegram client (session %s)", session_name)
    return TelegramClient(session_name, parsed_id, api_hash)


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    try:
        await qr.wait(timeout=QR_LOGIN_TIMEOUT)
    except asyncio.TimeoutError as e:
        raise LoginError(f"QR code was not scanned within {QR_LOGIN_TIMEOUT}s") from e


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    await client.sign_in(phone=phone, code=code)


AUTHORIZERS = {
    "qr": _authorize_with_qr,
    "phone": _authorize_with_phone,
}

_MENU = {"1": "qr", "2": "phone"}


def _pick_login_method() -> str:
    """Return "qr" or "phone", from LOGIN_METHOD or an interactive menu.

    Unattended runs (cron, one-shot backfills) have no terminal to prompt on,
    so an unauthorized session without LOGIN_METHOD is a login failure there.
    """

    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in AUTHORIZERS:
        return method
    if not sys.stdin.isatty():
        raise LoginError(
            "Session is not authorized and no terminal is attached; "
            "run get_session.py once interactively or set LOGIN_METHOD"
        )
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        choice = input("codescope > ").strip()
        if choice in _MENU:
            return _MENU[choice]
        if choice == "3":
            raise LoginError("Login cancelled")
        print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(client: TelegramClient) -> None:
    if await client.is_user_authorized():
        return

    method = _pick_login_method()
    LOGGER.info("Authorizing with %s login", method)
    try:
        await AUTHORIZERS[method](client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def login(client: TelegramClient) -> str:
    """Connect, authorize, and return the account's display tag.

    Any failure on the way is re-raised as LoginError, which is fatal.
    """

    try:
        await client.connect()
        await authorize(client)
        me = await client.get_me()
    except LoginError:
        raise
    except (errors.RPCError, asyncio.TimeoutError, ConnectionError, OSError) as e:
        raise LoginError(f"Error logging in: {e}") from e
    if me is None:
        raise LoginError("Error logging in: session is not authorized")

    username = getattr(me, "username", None)
    return f"@{username}" if username else str(me.first_name or me.id)


async def main() -> None:
    client = build_client()
    tag = await login(client)
    print(f"Logged in as {tag}!")
    await client.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
