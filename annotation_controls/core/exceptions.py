"""
Domain Exceptions

Errors raised by the services layer and mapped to HTTP responses by the API.
"""


class AnnotationServiceError(Exception):
    """Base class for annotation service errors."""


class PersistenceError(AnnotationServiceError):
    """A save, delete or flag operation against the store failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class AnnotationNotFoundError(AnnotationServiceError):
    """No annotation exists with the requested id."""

    def __init__(self, annotation_id: str):
        self.annotation_id = annotation_id
        super().__init__(f"Annotation {annotation_id} not found")


class VoteInProgressError(AnnotationServiceError):
    """A vote on this annotation is still being persisted."""

    def __init__(self, annotation_id: str):
        self.annotation_id = annotation_id
        super().__init__(f"A vote on annotation {annotation_id} is already in progress")


class ReservedTagError(ValueError):
    """A user-entered tag uses the namespace reserved for vote markers."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Tag '{tag}' uses the reserved 'vote:' prefix")
