"""Models module."""
from storerate.models.user import Role, User  # noqa: F401
from storerate.models.store import Store  # noqa: F401
from storerate.models.rating import Rating  # noqa: F401
