"""Caller identity port."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ICurrentUserProvider(Protocol):
    """Resolves the id of the signed-in user, if any."""

    def current_user_id(self) -> Optional[str]:
        """Return the authenticated user id or None when signed out."""
        ...


class StaticUserProvider:
    """
    Fixed identity, used by tests and scripts.

    Example:
        >>> StaticUserProvider("user_1").current_user_id()
        'user_1'
    """

    def __init__(self, user_id: Optional[str]) -> None:
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        self._user_id = user_id

    def sign_out(self) -> None:
        self._user_id = None
