"""Error types for storalyzer."""


class StoralyzerError(Exception):
    """Base class for errors reported to the user as a single message."""


class InvalidDriveError(StoralyzerError):
    """Drive identifier is not a drive letter or an absolute path."""


class RootAccessError(StoralyzerError):
    """Scan root does not exist, is not a directory, or cannot be listed."""


class DriveSpaceError(StoralyzerError):
    """Total/free space query failed."""


class DriveEnumerationError(StoralyzerError):
    """Listing the fixed drives failed."""


class ConfigError(StoralyzerError):
    """Configuration file could not be read or is invalid."""


class ReportError(StoralyzerError):
    """Report file could not be written."""
