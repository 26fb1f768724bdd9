"""
doc-recovery: processing-session lifecycle and error recovery for document pipelines.
"""

__version__ = "0.1.0"
