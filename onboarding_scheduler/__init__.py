"""Availability and booking scheduling for merchant onboarding."""

__version__ = "0.1.0"
