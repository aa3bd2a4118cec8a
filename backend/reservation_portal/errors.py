"""Domain errors raised by the booking core and repository."""


class InvalidInterval(ValueError):
    """A time interval whose end is not after its start."""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(f"Interval end {end} must be after start {start}")


class SlotUnavailable(Exception):
    """The requested room interval overlaps an active reservation."""

    def __init__(self, room_id: str, conflicts: list):
        self.room_id = room_id
        self.conflicts = conflicts
        super().__init__(f"Room {room_id} is already booked for the requested interval")


class StaleBookingState(Exception):
    """The room's booking state changed between availability check and insert."""

    def __init__(self, room_id: str, expected: int, actual: int):
        self.room_id = room_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Room {room_id} booking state is at version {actual}, expected {expected}"
        )
