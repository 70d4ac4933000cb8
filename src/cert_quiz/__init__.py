"""Certification practice quizzes: session engine, scoring and reports."""

__all__ = ["__version__"]

__version__ = "0.1.0"
