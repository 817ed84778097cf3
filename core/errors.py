"""
Configuration errors raised before any network I/O starts.

They derive from ValueError so callers (CLI, API) can map every bad
invocation to a client error the same way.
"""


class ScanConfigError(ValueError):
    pass


class InvalidAddress(ScanConfigError):
    pass


class InvalidRange(ScanConfigError):
    pass


class InvalidPortRange(ScanConfigError):
    pass
