class FanMonitorError(Exception):
    """Base class for all fan monitor errors."""


class ValidationError(FanMonitorError):
    """A command carried input outside the accepted domain."""


class PublishError(FanMonitorError):
    """The transport refused or failed to deliver an outbound command."""


class ParseError(FanMonitorError):
    """An inbound transport payload could not be understood."""


class PersistenceError(FanMonitorError):
    """The history store failed to read or write."""
