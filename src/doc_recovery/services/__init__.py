"""
Service package

Business logic of the recovery engine.
"""
