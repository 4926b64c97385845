"""
OPJA Core Package
=================
Label cryptography for privacy-preserving audience activation, shared by
matching systems (label senders) and DSPs (label receivers).

Provides:
- X25519 identity key rings with rotation
- Directory-backed trust validation of counterparty keys
- HPKE Auth-mode key establishment (X25519, HKDF-SHA256, AES-128-GCM exporter)
- Boolean label sealing/opening bound to match transaction ids
- A wipe-on-evict transaction key cache
"""

__version__ = "0.1.0"
