"""Passwordless authentication service.

WebAuthn registration and authentication ceremonies with single-use
challenges, signature-counter clone detection, and session issuance.
"""

__version__ = "0.1.0"
