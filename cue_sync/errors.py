"""
Error types shared by the store, repository and domain packages.

Validation errors subclass ValueError so callers that only care about "bad
input" can catch ValueError, matching how the schema constructors raise.
"""


class SchemaValidationError(ValueError):
    """Raised when a record fails validation at construction time."""
    pass


class DocumentNotFoundError(LookupError):
    """Raised when updating or reading a document that does not exist."""

    def __init__(self, path: str, doc_id: str):
        self.path = path
        self.doc_id = doc_id
        super().__init__(f"Document not found: {path}/{doc_id}")


class PermissionDeniedError(Exception):
    """Raised when a non-owner attempts an owner-only operation."""
    pass


class MissingPrerequisiteError(Exception):
    """Raised when an operation needs data that has not been created yet."""
    pass
