"""Errors raised by the valuation engine.

Validation errors subclass ValueError so callers that only know about
ValueError (as the API routes do) still catch them.
"""


class SimulationError(Exception):
    """Base class for all simulation failures."""


class SimulationValidationError(SimulationError, ValueError):
    """The request or its assumption set cannot be simulated."""


class DegenerateScenarioError(SimulationValidationError):
    """A drawn scenario has no finite valuation (wacc too close to terminal growth)."""


class SimulationCancelled(SimulationError):
    """The caller's cancellation token was set before the run finished."""
