"""
MEV Protection Module.

Private relay submission, transaction signing and the shared nonce counter.
"""
