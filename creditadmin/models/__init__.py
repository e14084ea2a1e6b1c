from creditadmin.models.balance import Balance
from creditadmin.models.user import User

__all__ = [
    "User",
    "Balance",
]
