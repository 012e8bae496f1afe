class RoomStoreError(Exception):
    """Base for failures raised by the room store, carrying an HTTP status."""
    status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(RoomStoreError):
    status = 400


class NotFoundError(RoomStoreError):
    status = 404


class InternalError(RoomStoreError):
    status = 500


class TransientNetworkError(Exception):
    """The room store could not be reached at all."""


class RoomApiError(Exception):
    """The room store answered with a non-2xx status."""

    def __init__(self, status, message):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
