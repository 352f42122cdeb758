"""Principal context for permission-gated operations."""

from models.role import Role
from models.user import User


class Principal:
    """The authenticated actor performing a workflow operation."""

    def __init__(self, principal_id: int, role_name: str):
        """
        Initialize principal.

        Args:
            principal_id: User.id of the actor
            role_name: Name of the actor's role
        """
        self.principal_id = principal_id
        self.role_name = role_name

    @classmethod
    def from_user(cls, user: User, role: Role | None) -> "Principal":
        """
        Create a Principal from a user and its role.

        A user without a role gets an empty role name, which resolves to no
        permissions.
        """
        return cls(principal_id=user.id, role_name=role.name if role else "")

    def __repr__(self) -> str:
        return f"Principal(principal_id={self.principal_id!r}, role_name={self.role_name!r})"
