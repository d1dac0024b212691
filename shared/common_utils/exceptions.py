class RemoteConfigurationError(Exception):
    pass


class FormatError(RemoteConfigurationError, ValueError):
    """Malformed configuration document. Always fatal to the parse."""
    pass


class TransportError(RemoteConfigurationError):
    """The remote configuration endpoint could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class StoreCycleError(RemoteConfigurationError):
    """A single watch cycle failed. The watch loop logs it and carries on."""
    pass


class PublishError(RemoteConfigurationError):
    """A bus adapter failed to send a change notification."""

    def __init__(self, message: str, topic: str = None):
        super().__init__(message)
        self.topic = topic


class ConfigurationWarning(UserWarning):
    pass
