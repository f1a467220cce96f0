"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity or index does not exist."""


def invalid_side(side: str) -> str:
    """Return message for an unknown record side."""
    return f"Unknown side '{side}': expected 'bank' or 'gl'"


def unmatched_item_not_found(side: str, index: int) -> str:
    """Return message for a missing unmatched record."""
    label = "bank transaction" if side == "bank" else "GL entry"
    return f"Unmatched {label} {index} not found"


def match_not_found(index: int) -> str:
    """Return message for a missing match result."""
    return f"Match {index} not found"


def suggestion_not_found(index: int) -> str:
    """Return message for a missing smart match suggestion."""
    return f"Suggestion {index} not found"


def empty_selection() -> str:
    """Return message when a match is confirmed without any target."""
    return "Please select one or more items to match"


def duplicate_selection(index: int) -> str:
    """Return message when the same target is selected twice."""
    return f"Item {index} is selected more than once"


def no_smart_match_source() -> str:
    """Return message when suggestions are used before a source is chosen."""
    return "No smart match source selected; request suggestions first"


def stale_suggestion() -> str:
    """Return message when a suggestion refers to records already matched."""
    return "Suggestion is out of date: its records are no longer unmatched"
