"""Ratify — member voting on candidates with a unanimity status rule."""

__version__ = "0.1.0"
