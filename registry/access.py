"""
Layered Asset Registry - Administrator Gate

The registry requires a single capability from its identity layer: deciding
whether a principal is the administrator. The facade accepts any callable
``is_admin(principal) -> bool``; AdministratorGate is the default one,
comparing against a principal fixed at construction.
"""

from typing import Callable

from .exceptions import InvalidArgumentError


AdminPredicate = Callable[[str], bool]


class AdministratorGate:
    """Authorize a single administrator principal."""

    def __init__(self, administrator: str):
        if not isinstance(administrator, str) or not administrator:
            raise InvalidArgumentError("Administrator principal must be a non-empty string")
        self._administrator = administrator

    @property
    def administrator(self) -> str:
        return self._administrator

    def is_admin(self, principal: str) -> bool:
        return principal == self._administrator

    def __call__(self, principal: str) -> bool:
        return self.is_admin(principal)

    def __repr__(self) -> str:
        return f"AdministratorGate({self._administrator!r})"
