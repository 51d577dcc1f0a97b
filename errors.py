class SiteForgeError(Exception):
    """Base class for every failure the service reports to a caller."""


class ValidationError(SiteForgeError):
    """A required input is missing, empty or not acceptable."""


class UpstreamModelError(SiteForgeError):
    """The generative model call failed, timed out or returned an unusable body."""


class ParseError(SiteForgeError):
    """No file segments could be recognised in the model output."""


class StorageError(SiteForgeError):
    """Local file I/O on the project directory failed."""


class NotFoundError(StorageError):
    """The requested project file does not exist."""


class DeploymentError(SiteForgeError):
    """The remote static-hosting store was unreachable or rejected a call."""
