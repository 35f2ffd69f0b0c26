"""
Custom exception types for edgectl.
"""

class EdgeCtlException(Exception):
    """Base exception for all edgectl errors."""
    pass

class ConfigDirError(EdgeCtlException):
    """Raised when the configuration directory cannot be resolved."""
    pass

class SettingsError(EdgeCtlException):
    """Raised when the settings file cannot be read or decoded."""
    pass

class AnalyticsError(EdgeCtlException):
    """Raised by analytics clients when an event cannot be enqueued."""
    pass
