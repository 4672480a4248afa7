"""
Common building blocks for the s3bench engine.
"""

from .records import Operation, Response, Result

__all__ = ['Operation', 'Response', 'Result']
