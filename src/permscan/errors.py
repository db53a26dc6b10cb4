class PermscanError(Exception):
    """Base class for all permscan failures."""


class ScanError(PermscanError):
    """The scan cannot start, e.g. the scan root is empty or missing."""


class AdapterError(PermscanError):
    """A source file could not be read or structurally scanned."""


class RulesError(PermscanError):
    pass


class ConfigError(PermscanError):
    pass


class DecisionError(PermscanError):
    """A decision provider could not produce a decision for a mismatch."""
