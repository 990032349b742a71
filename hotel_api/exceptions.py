"""Error taxonomy for the hotel API."""


class HotelApiError(Exception):
    """Base error for everything raised by this package."""

    pass


class ValidationError(HotelApiError, ValueError):
    """Raised locally, before any network call, for bad input."""

    pass


class HotelIdRequiredError(ValidationError):
    pass


class SearchValidationError(ValidationError):
    pass


class HotelNotFoundError(HotelApiError):
    def __init__(self, hotel_id):
        super().__init__(f"Hotel with ID {hotel_id} not found")
        self.hotel_id = hotel_id


class SearchFailedError(HotelApiError):
    """The search endpoint answered with an ErrorMessage code."""

    def __init__(self, message: str, code=None):
        super().__init__(message)
        self.code = code


class ApiRequestError(HotelApiError):
    """Transport failure talking to the remote service."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        data=None,
        is_timeout: bool = False,
        is_network_error: bool = False,
    ):
        super().__init__(message)
        self.status = status
        self.data = data
        self.is_timeout = is_timeout
        self.is_network_error = is_network_error

    @property
    def retryable(self) -> bool:
        if self.is_network_error or self.is_timeout:
            return True
        if self.status is None:
            return False
        return self.status >= 500 or self.status in (408, 429)
