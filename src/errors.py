"""Error taxonomy for the decision core."""


class FocusGateError(Exception):
    pass


class InvalidPattern(FocusGateError):
    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class StoreUnavailable(FocusGateError):
    pass


class QuotaComputationError(FocusGateError):
    pass
