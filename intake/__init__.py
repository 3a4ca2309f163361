"""Benefits intake - application submission and lifecycle engine."""
from intake.version import __version__

__all__ = ["__version__"]
