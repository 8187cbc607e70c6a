"""
Mock implementations for testing cxxkit components.

This package provides stand-ins for external build tools so backends can be
tested deterministically.
"""

from .process import FakeProcessRunner, RecordedCall

__all__ = [
    "FakeProcessRunner",
    "RecordedCall",
]
