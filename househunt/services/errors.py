"""Error types raised by the notification and push services."""


class HouseHuntError(Exception):
    """Base exception for the application."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PersistenceError(HouseHuntError):
    """Storage unavailable or a constraint was violated."""


class DeliveryError(HouseHuntError):
    """A live message or push could not be delivered.

    ``permanent`` is set when the provider reports that the destination will
    never accept deliveries again (expired or unsubscribed push endpoint).
    """

    def __init__(self, message: str, permanent: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.permanent = permanent
        self.status_code = status_code
