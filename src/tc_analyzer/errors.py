"""Exception types raised across the analyzer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FieldError:
    """One field-level validation message."""

    loc: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.loc, "message": self.message}


class ProfileValidationError(ValueError):
    """A questionnaire or update payload failed shape/enum validation."""

    def __init__(self, errors: list[FieldError], prefix: str = "Profile validation failed") -> None:
        self.errors = errors
        detail = ", ".join(f"{e.loc}: {e.message}" for e in errors)
        super().__init__(f"{prefix}: {detail}")

    @classmethod
    def from_pydantic(cls, exc, prefix: str = "Profile validation failed") -> "ProfileValidationError":
        errors = [
            FieldError(
                loc=".".join(str(part) for part in err.get("loc", ())) or "<root>",
                message=err.get("msg", "invalid value"),
            )
            for err in exc.errors()
        ]
        return cls(errors, prefix=prefix)


class ProfileNotFoundError(LookupError):
    """An update targeted a user without a stored profile."""


class UpstreamError(RuntimeError):
    """The external LLM call failed (network, quota, empty reply)."""


class InsufficientPassesError(RuntimeError):
    """There are no pass results to synthesize."""


class MultiPassIncompleteError(RuntimeError):
    """A pass failed before enough passes completed to synthesize safely."""

    def __init__(self, message: str, passes_completed: int) -> None:
        super().__init__(message)
        self.passes_completed = passes_completed
