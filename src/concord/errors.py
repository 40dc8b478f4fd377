"""
errors.py — Concord Ledger Error Taxonomy

Standardized error codes for the reconciliation engine. Every condition a
multi-writer append-only log produces in steady state has its own class so
callers can recover selectively.
"""

from typing import Any, List, Optional

__all__ = [
    "ConcordError",
    "ContentIntegrityMismatchError",
    "MalformedRecordError",
    "NotAuthorizedError",
    "NotFoundError",
    "SigningError",
    "UnresolvedForkError",
    "AlreadySignedError",
    "DocumentLockedError",
    "MergeError",
    "NoCommonAncestorError",
    "InsufficientForksError",
    "PublishError",
]


class ConcordError(Exception):
    """Base class for all Concord-related errors."""
    def __init__(
        self,
        code: str,
        message: str,
        context: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.context = context

        full_msg = f"[{code}] {message}"
        if context:
            full_msg += f" Context: {context}"

        super().__init__(full_msg)

    @property
    def doc_url(self) -> str:
        """Link to the human-readable documentation for this error."""
        return f"https://concord-ledger.dev/errors/{self.code}"


# Integrity / format errors (E0xx, E3xx)
class ContentIntegrityMismatchError(ConcordError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("CONCORD_E001", "A document_id does not equal the content hash recomputed from body_text.", context)


class MalformedRecordError(ConcordError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("CONCORD_E300", "A record or document payload is missing fields or violates a structural invariant.", context)


# Lookup / authorization errors (E4xx)
class NotAuthorizedError(ConcordError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("CONCORD_E403", "Only the author of the latest revision may edit an unsigned document.", context)


class NotFoundError(ConcordError):
    def __init__(self, context: Optional[str] = None, anomalies: Optional[List[Any]] = None):
        super().__init__("CONCORD_E404", "No usable records correlate to the requested document.", context)
        self.anomalies = anomalies or []


# Signing errors
class SigningError(ConcordError):
    """Base class for refusals raised while producing the next revision."""


class UnresolvedForkError(SigningError):
    def __init__(self, forks: List[Any], context: Optional[str] = None):
        super().__init__("CONCORD_E409", f"Document has {len(forks)} divergent revisions; merge them before signing.", context)
        self.forks = list(forks)


class AlreadySignedError(SigningError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("CONCORD_E410", "This identity has already signed the document.", context)


class DocumentLockedError(SigningError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("CONCORD_E411", "A document cannot be edited once it carries signatures.", context)


# Merge errors
class MergeError(ConcordError):
    """Base class for merge precondition violations."""


class NoCommonAncestorError(MergeError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("CONCORD_E420", "The forks do not trace back to a common ancestor revision.", context)


class InsufficientForksError(MergeError):
    def __init__(self, count: int, context: Optional[str] = None):
        super().__init__("CONCORD_E421", f"Merging requires at least 2 forks, got {count}.", context)
        self.count = count


# Collaborator errors (E5xx)
class PublishError(ConcordError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("CONCORD_E500", "The record store rejected or failed to persist a record.", context)
