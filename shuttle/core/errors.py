"""Domain errors raised by services and mapped to HTTP responses in ``shuttle.main``."""


class ShuttleError(Exception):
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationFailed(ShuttleError):
    code = "VALIDATION_ERROR"


class NotFoundError(ShuttleError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ShuttleError):
    code = "CONFLICT"


class SoldOutError(ShuttleError):
    """Booking would exceed the departure's capacity."""

    status_code = 409
    code = "SOLD_OUT"

    def __init__(self, departure_id: str, available_seats: int, requested: int):
        super().__init__(
            f"Not enough seats available: requested {requested}, {available_seats} left"
        )
        self.departure_id = departure_id
        self.available_seats = available_seats
        self.requested = requested

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["departureId"] = self.departure_id
        out["availableSeats"] = self.available_seats
        return out
