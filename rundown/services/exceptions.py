"""Service-level exceptions for report generation and delivery."""


class ServiceError(Exception):
    """Base exception for service errors."""
    pass


class UserMappingError(ServiceError):
    """A user has no identity in the system a report needs (e.g. no Linear account)."""

    def __init__(self, user_id: int, system: str = "Linear"):
        self.user_id = user_id
        self.system = system
        super().__init__(f"User {user_id} has no {system} account mapping")


class DeliveryStateError(ServiceError):
    """A delivery operation was requested on a log in the wrong state."""
    pass


class DataSourceUnavailable(ServiceError):
    """Credentials for an external data source are not configured."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"{source} is not configured")
