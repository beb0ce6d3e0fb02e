"""Exception types raised by pkgtrend."""


class PkgTrendError(Exception):
    """Base class for pkgtrend errors."""


class SourceUnavailable(PkgTrendError):
    """A top-level external source could not be fetched or parsed."""


class RegistryUnavailable(SourceUnavailable):
    """The registry index for a package could not be fetched or parsed."""


class RosterUnavailable(SourceUnavailable):
    """The stargazer roster could not be fetched completely."""


class NoVersionsFound(PkgTrendError):
    """The registry answered, but the package has no versions."""


class ReconciliationPartialWrite(PkgTrendError):
    """A roster write failed after earlier steps were committed."""

    def __init__(self, step: str, cause: Exception):
        super().__init__(f"Roster update failed during '{step}': {cause}")
        self.step = step
        self.cause = cause
