"""
Circulars package: the circular record, the remote source client and the snapshot stores.
"""

__version__ = "1.0.0"
