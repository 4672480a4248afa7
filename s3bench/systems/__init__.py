"""
Object storage backends.
"""
