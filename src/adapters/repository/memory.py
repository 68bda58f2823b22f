"""
In-memory repository adapter - Implements AccountRepository protocol.

Used for tests and single-process development. A single lock serialises
every read and write, which makes save() an atomic compare-and-swap and
uniqueness checks race-free. Accounts are deep-copied on the way in and
out so callers never share state with the store.
"""

import copy
import threading
from datetime import UTC, datetime

from src.domain.exceptions import EmailTaken, StaleAccount, UsernameTaken
from src.domain.models import Account


class InMemoryAccountRepository:
    """
    Implements AccountRepository protocol with a lock-guarded dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def find_by_id(self, account_id: int) -> Account | None:
        with self._lock:
            return copy.deepcopy(self._accounts.get(account_id))

    def find_by_username(self, username: str) -> Account | None:
        with self._lock:
            return copy.deepcopy(self._find(lambda a: a.username == username))

    def find_by_email(self, email: str) -> Account | None:
        with self._lock:
            return copy.deepcopy(self._find(lambda a: a.email == email))

    def find_by_pending_reset_code(self, code: str) -> Account | None:
        with self._lock:
            holders = [
                a for a in self._accounts.values()
                if a.pending_reset is not None and a.pending_reset.code == code
            ]
            if not holders:
                return None
            newest = max(holders, key=lambda a: a.pending_reset.issued_at)
            return copy.deepcopy(newest)

    def save(self, account: Account) -> Account:
        """
        Insert or compare-and-swap update.

        Raises:
            EmailTaken / UsernameTaken: Another account holds the value
            StaleAccount: Stored version differs, or account was deleted
        """
        with self._lock:
            for other in self._accounts.values():
                if other.id == account.id:
                    continue
                if other.email == account.email:
                    raise EmailTaken()
                if other.username == account.username:
                    raise UsernameTaken()

            if account.id is None:
                account.id = self._next_id
                self._next_id += 1
            else:
                stored = self._accounts.get(account.id)
                if stored is None or stored.version != account.version:
                    raise StaleAccount()

            account.version += 1
            account.updated_at = datetime.now(UTC)
            self._accounts[account.id] = copy.deepcopy(account)
            return account

    def delete_by_id(self, account_id: int) -> bool:
        with self._lock:
            return self._accounts.pop(account_id, None) is not None

    def find_all(self) -> list[Account]:
        with self._lock:
            return [copy.deepcopy(a) for a in sorted(self._accounts.values(), key=lambda a: a.id)]

    def _find(self, predicate) -> Account | None:
        for account in self._accounts.values():
            if predicate(account):
                return account
        return None
