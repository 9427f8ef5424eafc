class AnalysisError(ValueError):
    """Base class for inputs an analyzer refuses to work with."""


class InvalidArmData(AnalysisError):
    """Negative or out-of-order counts, or a confidence outside 0-100, in an experiment arm."""


class InvalidConfidenceLevel(AnalysisError):
    def __init__(self, confidence_level: float, supported=(0.90, 0.95, 0.99)):
        self.confidence_level = confidence_level
        super().__init__(
            f"Unsupported confidence level {confidence_level}. "
            f"Use one of: {', '.join(f'{level:.2f}' for level in supported)}"
        )


class InvalidPowerLevel(AnalysisError):
    def __init__(self, power: float, supported=(0.80, 0.90)):
        self.power = power
        super().__init__(
            f"Unsupported statistical power {power}. "
            f"Use one of: {', '.join(f'{level:.2f}' for level in supported)}"
        )


class InvalidScheduleInput(AnalysisError):
    """Month out of range, non-positive capacity or a malformed HH:MM time."""
