"""Custom exceptions for the timetable engine."""


class TimetableError(Exception):
    """Base exception for structurally invalid scheduling input."""

    pass


class InvalidEntityError(TimetableError):
    """An entity failed structural validation."""

    def __init__(self, message: str, entity_id: str | None = None):
        self.entity_id = entity_id
        location = f" in '{entity_id}'" if entity_id else ""
        super().__init__(f"Invalid entity{location}: {message}")


class MalformedInterval(TimetableError):
    """A time interval whose start is not before its end."""

    def __init__(self, day: str, start: str, end: str, owner: str | None = None):
        self.day = day
        self.start = start
        self.end = end
        self.owner = owner
        message = f"Malformed interval {day} {start}-{end}: start must be before end"
        if owner:
            message += f" (owner '{owner}')"
        super().__init__(message)


class UnknownReferenceError(TimetableError):
    """An entity references an id that does not exist in the snapshot."""

    def __init__(self, kind: str, entity_id: str, reference: str):
        self.kind = kind
        self.entity_id = entity_id
        self.reference = reference
        super().__init__(
            f"{kind.capitalize()} '{entity_id}' references unknown id '{reference}'"
        )


class DegreeMismatch(TimetableError):
    """A group lists a subject that belongs to a different degree."""

    def __init__(
        self,
        group_id: str,
        subject_id: str,
        group_degree: str | None = None,
        subject_degree: str | None = None,
    ):
        self.group_id = group_id
        self.subject_id = subject_id
        self.group_degree = group_degree
        self.subject_degree = subject_degree
        message = f"Group '{group_id}' lists subject '{subject_id}' from another degree"
        if group_degree and subject_degree:
            message += f" (group degree '{group_degree}', subject degree '{subject_degree}')"
        super().__init__(message)
