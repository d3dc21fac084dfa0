"""Exceptions raised by the tournament engine.

Every error carries a ``kind`` so callers (the HTTP adapter, a CLI, a
message consumer) can branch on the category without importing each class.
"""
from typing import Any, Dict, Optional


class TournamentEngineError(Exception):
    """Base exception for all engine errors."""

    kind = "engine_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


# ========== State Violations ==========


class StateViolation(TournamentEngineError):
    """An operation was attempted from a status that does not permit it."""

    kind = "state_violation"


class InvalidStateTransition(StateViolation):
    """Raised when a tournament or match cannot move to the requested status."""

    pass


class InvalidParticipantTransition(StateViolation):
    """Raised when a registration status change is not in the transition table."""

    pass


class MatchNotReady(StateViolation):
    """Raised when a match is started without both participant slots filled."""

    pass


class MatchNotInProgress(StateViolation):
    """Raised when a result is recorded for a match that is not being played."""

    pass


class AlreadyFinalized(StateViolation):
    """Raised when a different final standing is set on a finalized participant."""

    pass


class ResultAlreadyRecorded(StateViolation):
    """Raised when a decided match is re-decided with a different winner."""

    pass


class ParticipantCountUnderflow(StateViolation):
    """Raised when the participant counter would drop below zero."""

    pass


# ========== Capacity ==========


class CapacityExceeded(TournamentEngineError):
    """Raised when confirming a participant would breach max_participants."""

    kind = "capacity_exceeded"


class InsufficientParticipants(TournamentEngineError):
    """Raised when a tournament is started below min_participants."""

    kind = "insufficient_participants"


# ========== Registration ==========


class EligibilityViolation(TournamentEngineError):
    """Raised when an entrant fails an eligibility rule.

    ``details["rule"]`` names the rule that failed.
    """

    kind = "eligibility_violation"

    def __init__(self, message: str, rule: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, {"rule": rule, **(details or {})})
        self.rule = rule


class RegistrationClosed(EligibilityViolation):
    """Raised when a registration arrives outside the open registration window."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, rule="registration_window", details=details)


class DuplicateRegistration(TournamentEngineError):
    """Raised when the entrant is already registered for the tournament."""

    kind = "duplicate_registration"


# ========== Results & Bracket ==========


class UndeterminedResult(TournamentEngineError):
    """Raised when a tied score is submitted without an explicit winner."""

    kind = "undetermined_result"


class InvalidResult(TournamentEngineError):
    """Raised when a submitted result names a winner outside the match."""

    kind = "invalid_result"


class BracketInconsistency(TournamentEngineError):
    """Raised when progression would corrupt the bracket.

    This signals bad bracket wiring upstream and must never be swallowed.
    """

    kind = "bracket_inconsistency"


# ========== Seeding ==========


class DuplicateSeed(TournamentEngineError):
    """Raised when a seed value would be held by two confirmed participants."""

    kind = "duplicate_seed"


class InvalidSeed(TournamentEngineError):
    """Raised when seeds fall outside 1..N or leave gaps."""

    kind = "invalid_seed"


# ========== Lookup ==========


class NotFound(TournamentEngineError):
    """Raised when a referenced tournament, participant, match or entrant does not exist."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id
