class BookingError(Exception):
    """Base class for booking domain failures."""

    default_message = "Booking request failed."

    def __init__(self, message: str | None = None, **context):
        self.context = context
        super().__init__(message or self.default_message)


class BookingValidationError(BookingError):
    default_message = "Booking request is invalid."


class InvalidTimeSlots(BookingValidationError):
    default_message = "Time slots are malformed."


class DurationTooShort(BookingValidationError):
    default_message = "Requested duration is below the place minimum."


class InvalidPricingConfig(BookingValidationError):
    default_message = "Place pricing configuration is inconsistent."


class InvalidPerkSelection(BookingValidationError):
    default_message = "Requested perk is not offered by this place."


class SlotUnavailable(BookingValidationError):
    default_message = "Requested time overlaps an approved booking."


class InvalidTransition(BookingError):
    """The booking is not in a state from which the event may fire."""

    default_message = "Booking cannot move to the requested state."
