"""Conversation feature package: entities, extraction, nonces, service and HTTP surface.

Conversations are created behind a single-use nonce, assistant messages
have their trailing citation block stored as references, and reads are
enriched with a best-effort geographic location of the requester IP.
"""
