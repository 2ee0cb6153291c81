"""Exception hierarchy for the cooperative hunting simulation."""


class CoopSimError(Exception):
    """Root of all simulation errors."""


class ConfigError(CoopSimError):
    """Invalid or missing configuration."""


class SimulationError(CoopSimError):
    """A broken simulation invariant, such as an unknown body handle."""
