"""Data handling: record time-series history of a run."""

from lgrlib.data._history import StateHistory

__all__ = ['StateHistory']
