"""Voice Mirror: reflections spoken back in the user's own cloned voice."""

__version__ = "0.1.0"
