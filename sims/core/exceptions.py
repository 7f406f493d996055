from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnauthenticatedError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class InvalidArgumentError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class UpstreamError(Exception):
    """A write or lookup rejected by the identity provider or the record store.

    Carries the upstream message verbatim so it can be reported per row.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class IdentityError(UpstreamError):
    pass


class StoreError(UpstreamError):
    pass


class RowValidationError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
