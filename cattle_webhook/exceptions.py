class WebhookException(Exception):
    """Base class for errors that are not policy denials."""


class QuantityParseError(WebhookException, ValueError):
    """A stored quantity does not follow the Kubernetes quantity grammar."""


class AdmissionDecodeError(WebhookException):
    """The admission review or one of its objects could not be decoded."""


class UnsupportedResourceError(WebhookException):
    """No validator is registered for the requested resource."""


class CollaboratorError(WebhookException):
    """A lookup or authorization collaborator failed."""


class NotFoundError(CollaboratorError):
    """The requested object does not exist."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} {name!r} not found")
        self.kind = kind
        self.name = name


class VersionManagementError(WebhookException, ValueError):
    """The version management annotation cannot be classified."""
