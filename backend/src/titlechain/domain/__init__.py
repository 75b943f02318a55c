"""
Domain package - Core ledger logic with no external dependencies.

This package contains the pure Python entity model, the document status
state machine, hashing primitives and boundary validation rules.
"""
