"""Exceptions raised by the campaign analysis engine."""


class AnalyticsError(Exception):
    """Base class for analysis failures."""


class UnknownStanceError(AnalyticsError):
    """A stance value has no entry in the score table."""

    def __init__(self, stance):
        self.stance = stance
        super().__init__(f"Unknown political stance: {stance!r}")


class DanglingReferenceError(AnalyticsError):
    """A relationship references a voter outside the campaign's voter set."""

    def __init__(self, relationship_id: str, missing_voter_id: str):
        self.relationship_id = relationship_id
        self.missing_voter_id = missing_voter_id
        super().__init__(
            f"Relationship {relationship_id} references unknown voter {missing_voter_id}"
        )


class VoterNotFoundError(AnalyticsError):
    def __init__(self, voter_id: str):
        self.voter_id = voter_id
        super().__init__(f"Voter {voter_id} not found in influence graph")


class AggregationError(AnalyticsError):
    """A report component failed; no partial report is produced."""

    def __init__(self, component: str, message: str = ""):
        self.component = component
        detail = f": {message}" if message else ""
        super().__init__(f"Report component '{component}' failed{detail}")
