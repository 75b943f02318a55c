"""
Services package - The document ledger and its collaborators.

Includes the ledger core, audit sinks and the e-signature boundary.
"""

from .audit import CompositeAuditSink, DatabaseAuditSink, LoggingAuditSink
from .ledger import DocumentLedger

__all__ = ["DocumentLedger", "LoggingAuditSink", "DatabaseAuditSink", "CompositeAuditSink"]
