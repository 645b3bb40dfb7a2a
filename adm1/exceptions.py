"""Exceptions raised by the ADM1 engine."""


class InvalidConfigurationError(ValueError):
    """Raised before any stepping when a reactor, parameter or run setting is unusable."""


class IntegrationError(RuntimeError):
    """Raised by an integrator step that could not advance the state."""
