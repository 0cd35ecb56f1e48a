"""Weam integrator: scan a web app and wire it into the Weam platform."""

__version__ = "0.3.0"
