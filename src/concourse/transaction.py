"""
Transaction support for the Concourse driver.

A staged transaction collects writes on the server until it is committed
or aborted. Only one transaction may be staged per client at a time.
"""

from typing import TYPE_CHECKING, Any, Self

from .exceptions import TransactionError

if TYPE_CHECKING:
    from .client import Concourse


class Transaction:
    """
    Context manager around ``stage``/``commit``/``abort``.

    Usage:
        with concourse.transaction():
            concourse.set("balance", 90, 1)
            concourse.set("balance", 110, 2)
            # Commit on success, abort on exception
    """

    def __init__(self, client: "Concourse"):
        self._client = client
        self._committed = False
        self._aborted = False
        self.result: Any = None

    @property
    def is_active(self) -> bool:
        """Check if the transaction is staged and not yet finished."""
        return self._client.in_transaction and not self._committed and not self._aborted

    @property
    def is_committed(self) -> bool:
        """Check if transaction was committed."""
        return self._committed

    @property
    def is_aborted(self) -> bool:
        """Check if transaction was aborted."""
        return self._aborted

    def __enter__(self) -> Self:
        self._client.stage()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        """Commit on success, abort on exception."""
        if exc_type is not None:
            self.abort()
            return False  # Re-raise exception
        self.commit()
        return False

    def commit(self) -> Any:
        """Commit the staged writes."""
        if not self.is_active:
            raise TransactionError("Transaction not active")
        self.result = self._client.commit()
        self._committed = True
        if self.result is False:
            raise TransactionError("Transaction failed to commit")
        return self.result

    def abort(self) -> None:
        """Discard the staged writes."""
        if self._committed or self._aborted:
            return
        self._client.abort()
        self._aborted = True
