"""Exception types raised by the analysis and scoring engine."""


class BidlineError(Exception):
    """Base class for all engine errors."""

    pass


class ConfigurationError(BidlineError):
    """Raised when a schedule or engine setting cannot be used as given.

    Covers a missing or unparseable start date, a non-positive cycle length,
    a cycle count below one, and invalid configuration values. Never retried.
    """

    pass


class DataIntegrityError(BidlineError):
    """Raised when a schedule references a shift code missing from the reference table."""

    def __init__(self, code: str, message: str = ""):
        self.code = code
        super().__init__(message or f"Unknown shift code: {code!r}")


class ProviderError(BidlineError):
    """Raised when a holiday table cannot be obtained for a jurisdiction and year."""

    def __init__(self, jurisdiction: str, year: int, message: str = ""):
        self.jurisdiction = jurisdiction
        self.year = year
        super().__init__(
            message or f"Holiday lookup failed for {jurisdiction} {year}"
        )
