"""Skillship - publish generated agent skills to GitHub as atomic commits."""

__version__ = "0.1.0"
