"""
Benchmark report building and printing.
"""

from .tree import build_report
from .printer import print_report, format_text, format_json

__all__ = ['build_report', 'print_report', 'format_text', 'format_json']
