"""Milestone scheduling and dependency visualisation engine for project timelines."""

__version__ = "0.1.0"
