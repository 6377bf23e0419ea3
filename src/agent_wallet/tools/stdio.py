"""Line-delimited JSON request loop over stdin/stdout."""

from __future__ import annotations

import json
import logging
import sys
from typing import IO, TYPE_CHECKING

from agent_wallet.exceptions import RequestValidationError
from agent_wallet.tools.wallet_tools import failure

if TYPE_CHECKING:
    from agent_wallet.tools.wallet_tools import WalletDispatcher

logger = logging.getLogger("agent_wallet.tools.stdio")


def handle_line(dispatcher: WalletDispatcher, line: str | bytes) -> dict:
    """Decode one request line and dispatch it. Never raises."""
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            return failure(
                RequestValidationError(f"Request is not valid UTF-8 (byte {exc.start})")
            )
    try:
        request = json.loads(line)
    except json.JSONDecodeError as exc:
        return failure(RequestValidationError(f"Invalid JSON request: {exc.msg}"))
    try:
        return dispatcher.handle(request)
    except Exception:
        logger.exception("Unexpected error while handling request")
        return {
            "status": "error",
            "error": {"kind": "internal_error", "message": "Internal error; see server log"},
        }


def serve(
    dispatcher: WalletDispatcher,
    stdin: IO | None = None,
    stdout: IO[str] | None = None,
) -> int:
    """Answer requests until *stdin* closes. Returns the number handled."""
    stdin = stdin or sys.stdin
    # read bytes; each line is decoded by handle_line
    lines = getattr(stdin, "buffer", stdin)
    stdout = stdout or sys.stdout
    handled = 0
    logger.info("Wallet server ready on stdio")
    for line in lines:
        line = line.strip()
        if not line:
            continue
        response = handle_line(dispatcher, line)
        stdout.write(json.dumps(response) + "\n")
        stdout.flush()
        handled += 1
    logger.info(f"Input closed after {handled} request(s)")
    return handled
