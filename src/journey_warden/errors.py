"""Exception hierarchy for Journey Warden."""


class JourneyWardenError(Exception):
    """Base class for all Journey Warden errors."""


class PolicyViolationError(JourneyWardenError):
    """A caller asked the healing engine to break one of its invariants."""


class ForbiddenFixError(PolicyViolationError):
    """A forbidden fix type was requested."""

    def __init__(self, fix_type):
        self.fix_type = fix_type
        super().__init__(f"Fix '{fix_type.value}' is forbidden and can never be applied")


class UnhealableFailureError(PolicyViolationError):
    """A fix was requested for a failure category that needs human action."""

    def __init__(self, category):
        self.category = category
        super().__init__(f"Category '{category.value}' cannot be healed automatically")


class RunnerError(JourneyWardenError):
    """The verification runner could not produce a usable result."""


class JourneyInputError(JourneyWardenError):
    """A parsed journey structure could not be loaded."""
