# loyalty/errors.py
class LoyaltyError(Exception):
    """Base loyalty error."""
    def __init__(self, msg: str = ""):
        super().__init__(msg)
        self.msg = msg

    def __str__(self):
        return self.msg or self.__class__.__name__


class InvalidOrderNumber(LoyaltyError):
    """Order number is not a digit string or fails the Luhn checksum."""


class OrderExistsForUser(LoyaltyError):
    """Order number was already uploaded by the same user."""


class OrderExistsForOther(LoyaltyError):
    """Order number was already uploaded by another user."""


class OrderNotFound(LoyaltyError):
    """No order with the given number."""


class InvalidTransition(LoyaltyError):
    """Status change would move an order backwards or attach an accrual to a non-PROCESSED order."""

    def __init__(self, msg: str = "", **ctx):
        super().__init__(msg)
        self.ctx = ctx

    def __str__(self):
        base = super().__str__()
        if self.ctx:
            details = ", ".join(f"{k}={v}" for k, v in self.ctx.items())
            return f"{base} [{details}]"
        return base


class StorageError(LoyaltyError):
    """Storage backend failed to read or write."""


class ConfigError(LoyaltyError):
    """Invalid or missing configuration value."""
