"""
linkaudit: flag anomalous subject -> object relations.

Relations are compared either against the holder's peer group or against the
holder's own recent history.
"""

__version__ = "0.1.0"
