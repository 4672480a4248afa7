"""
Concurrent load generator and latency benchmark for S3-compatible object storage.
"""

__version__ = "0.3.0"
