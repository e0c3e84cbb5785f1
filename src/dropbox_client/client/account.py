"""Account information mixin for DropboxClient."""
from typing import Any

from .dispatcher import RequestHandle
from .models import AccountInfo


class AccountMixin:
    """Mixin providing information about the signed-in user."""

    def account_info(self, callback: Any) -> RequestHandle:
        """Fetch the current account.

        Args:
            callback: Called as callback(error, AccountInfo).

        Returns:
            The request handle.
        """
        return self._call(
            self._rpc("users/get_current_account"),
            callback,
            lambda payload, meta: AccountInfo.from_api(payload),
        )
