"""Error taxonomy for the review, aggregation and PII layers.

Request-level errors subclass ``HTTPException`` so services can raise them
directly and FastAPI turns them into responses. Internal errors are plain
exceptions and never carry plaintext or token contents in their messages.
"""

from fastapi import HTTPException


class ValidationError(HTTPException):
    """A review field violates its invariant (rating range, comment length)."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(status_code=422, detail={"field": field, "message": message})
        self.field = field
        self.message = message


class SelfReviewError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=403, detail="Workers cannot review an agency they own")


class NoRelationshipError(HTTPException):
    """Only workers whose placement with the agency is completed may review it."""

    def __init__(self, detail: str = "No verified relationship with this agency") -> None:
        super().__init__(status_code=403, detail=detail)


class DuplicateReviewError(HTTPException):
    """The worker already reviewed this agency; edits go through update instead."""

    def __init__(self) -> None:
        super().__init__(
            status_code=409,
            detail="You have already reviewed this agency. Update your existing review instead.",
        )


class InvalidTransitionError(HTTPException):
    def __init__(self, action: str, state: str) -> None:
        super().__init__(
            status_code=409,
            detail=f"Cannot {action} a review that is {state}",
        )
        self.action = action
        self.state = state


class ReviewPermissionError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=403, detail="Only the author can edit this review")


class ReviewNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=404, detail="Review not found")


class AgencyNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=404, detail="Agency not found")


class AggregationInconsistencyError(Exception):
    """A recomputed aggregate did not match the review set it was read from."""


class ConfigurationError(Exception):
    """Required configuration is missing or invalid at startup."""


class CipherError(Exception):
    """Base class for PII encryption failures."""


class MalformedTokenError(CipherError):
    """Input to decrypt is not an ``ivHex:cipherHex`` token."""


class DecryptionError(CipherError):
    """A well-formed token could not be decrypted (wrong key or corrupt data)."""


class EncryptionError(CipherError):
    pass
