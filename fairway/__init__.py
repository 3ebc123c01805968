"""Fairway: messaging safety and delivery core for the coaching platform."""

__version__ = "0.1.0"
