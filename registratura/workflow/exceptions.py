class RegistryError(Exception):
    """Base exception for all registry workflow errors."""


class DocumentNotFoundError(RegistryError):
    """Raised when a document cannot be found in the database."""


class WorkflowStepNotFoundError(RegistryError):
    """Raised when a referenced workflow step does not belong to the document."""


class ForbiddenError(RegistryError):
    """Raised when the actor is not allowed to perform the routing action."""


class InvalidInputError(RegistryError):
    """Raised when an inbound patch or argument is malformed."""


class InvalidTransitionError(InvalidInputError):
    """Raised when the requested change is not a legal lifecycle transition."""


class ConflictRaceError(RegistryError):
    """Raised when a serialized first-save check is found violated."""


class ActorNotFoundError(RegistryError):
    """Raised when a referenced actor does not exist or is inactive."""
