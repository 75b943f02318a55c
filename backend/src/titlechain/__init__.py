"""
titlechain - tamper-evident document ledger for real-estate loan closings.

Every action taken on a closing document (upload, approval, signature,
notarization, recording) is appended to the document's event log together
with the content hash the actor acted on.
"""

__version__ = "0.1.0"
