class BudgetError(Exception):
    """Base class for every error raised by budget_core."""


class InvalidTransaction(BudgetError, ValueError):
    """A transaction could not be constructed (bad kind, amount or category)."""


class InvalidBudgetConfig(BudgetError, ValueError):
    """Budget limit is not positive or the alert threshold is outside 0-100."""


# aggregate() and classify() document their failures under these names
InvalidBudgetError = InvalidBudgetConfig
InvalidConfigError = InvalidBudgetConfig


class ExternalServiceFailure(BudgetError, RuntimeError):
    """The report generator failed or returned data that does not fit the schema."""
