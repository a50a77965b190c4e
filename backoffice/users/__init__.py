"""Users module — tenant members, their roles and employment status."""

from backoffice.users.models import User

__all__ = ["User"]
