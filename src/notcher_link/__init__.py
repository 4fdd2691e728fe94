"""notcher-link: device discovery and command protocol for notcher units."""

__version__ = "0.1.0"
