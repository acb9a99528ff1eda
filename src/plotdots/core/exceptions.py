"""Exceptions raised by plotdots."""


class ConfigurationError(ValueError):
    """Options or input data cannot be processed.

    Raised before any computation starts. Every violation detected during
    validation is collected so callers can fix them in one pass.

    Attributes:
        violations: Human-readable description of each problem found
    """

    def __init__(self, violations: list[str] | str):
        if isinstance(violations, str):
            violations = [violations]
        self.violations = list(violations)
        super().__init__(self._format(self.violations))

    @staticmethod
    def _format(violations: list[str]) -> str:
        if len(violations) == 1:
            return violations[0]
        lines = "\n".join(f"  - {v}" for v in violations)
        return f"{len(violations)} configuration errors:\n{lines}"
