from __future__ import annotations


class LeagueSimulatorError(Exception):
    """Base class for errors raised by the league simulator."""


class ConfigurationError(LeagueSimulatorError, ValueError):
    """Inputs that do not fit together: vector lengths, team indices, counts."""


class ValidationError(LeagueSimulatorError, ValueError):
    """A single input value is malformed, e.g. negative goals or a NaN rating."""


class SimulationCancelled(LeagueSimulatorError):
    """Raised when a running simulation is cancelled between chunks."""
