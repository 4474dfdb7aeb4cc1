"""Exception hierarchy for the factory simulation."""


class FactorySimError(Exception):
    """Base class for every error raised by ``factory_sim``."""


class PlanningFailure(FactorySimError):
    """No path exists between two points, even after endpoint snapping."""


class EnvironmentInconsistency(FactorySimError):
    """A position fell outside the current world bounds."""


class PersistenceFailure(FactorySimError):
    """The external graph store was unreachable or rejected a write."""


class ConfigurationError(FactorySimError):
    """Required configuration (environment variables) is missing."""
