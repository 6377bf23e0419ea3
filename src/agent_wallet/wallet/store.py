"""JSON-file persistence for the wallet aggregate.

The store owns the single in-memory :class:`Wallet` and the lock that
serializes access to it. Every mutation runs inside :meth:`WalletStore.transaction`,
which writes the file before the call returns and rolls the in-memory state
back if anything (including the write) fails.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, TypeVar

from pydantic import ValidationError

from agent_wallet.exceptions import PersistenceError
from agent_wallet.wallet.models import Wallet, WalletDocument

logger = logging.getLogger("agent_wallet.wallet.store")

T = TypeVar("T")


def _describe_validation_error(exc: ValidationError) -> str:
    """Summarize pydantic errors without echoing input values."""
    parts = []
    for err in exc.errors(include_input=False):
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def load_wallet(path: Path) -> Wallet:
    """Read the wallet document at *path*.

    Returns an empty wallet if the file does not exist.

    Raises
    ------
    PersistenceError
        If the file cannot be read or is not a structurally valid wallet
        document. Nothing is dropped or repaired.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No wallet file at {path}; starting empty.")
        return Wallet()

    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(path, f"cannot be read ({exc.strerror or exc})") from exc

    try:
        raw_data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise PersistenceError(
            path, f"invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}"
        ) from None

    try:
        document = WalletDocument.model_validate(raw_data)
    except ValidationError as exc:
        raise PersistenceError(path, _describe_validation_error(exc)) from None

    try:
        wallet = Wallet.from_document(document)
    except ValueError as exc:
        raise PersistenceError(path, str(exc)) from None

    logger.info(f"Loaded {len(wallet)} account(s) from {path}")
    return wallet


def save_wallet(wallet: Wallet, path: Path) -> None:
    """Atomically write *wallet* to *path*.

    The document is written to a temporary file in the same directory and
    renamed over the target, so readers never observe a partial file.
    """
    path = Path(path)
    text = json.dumps(wallet.to_document(), indent=2) + "\n"
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise PersistenceError(path, f"cannot be written ({exc.strerror or exc})") from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning(f"Could not remove temporary file {tmp_name}")
    logger.debug(f"Saved {len(wallet)} account(s) to {path}")


class WalletStore:
    """Single owner of the wallet state and its backing file.

    Parameters
    ----------
    path:
        Location of the JSON document.
    wallet:
        Initial in-memory state. Use :meth:`open` to load it from *path*.
    """

    def __init__(self, path: Path, wallet: Wallet | None = None) -> None:
        self.path = Path(path)
        self._wallet = wallet if wallet is not None else Wallet()
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: Path) -> WalletStore:
        """Load the wallet at *path* (or start empty) and wrap it in a store."""
        path = Path(path).expanduser()
        return cls(path, load_wallet(path))

    # ------------------------------------------------------------------
    # Exclusive access
    # ------------------------------------------------------------------

    @contextmanager
    def read(self) -> Iterator[Wallet]:
        """Hold the lock while inspecting the wallet. Do not mutate."""
        with self._lock:
            yield self._wallet

    @contextmanager
    def transaction(self) -> Iterator[Wallet]:
        """Hold the lock for a mutation and persist it on success.

        If the block raises, or the file cannot be written, the in-memory
        wallet is restored to its state before the block and the error
        propagates.
        """
        with self._lock:
            snapshot = self._wallet.copy()
            try:
                yield self._wallet
                save_wallet(self._wallet, self.path)
            except BaseException:
                self._wallet.restore(snapshot)
                raise

    def with_exclusive_access(self, func: Callable[[Wallet], T], *, mutate: bool = True) -> T:
        """Run ``func(wallet)`` under the lock.

        With ``mutate=True`` the call is a :meth:`transaction`: persisted on
        success, rolled back on failure.
        """
        if mutate:
            with self.transaction() as wallet:
                return func(wallet)
        with self.read() as wallet:
            return func(wallet)

    def snapshot(self) -> Wallet:
        """A detached copy of the current state."""
        with self._lock:
            return self._wallet.copy()
