"""
opja_core.errors
----------------
Exception taxonomy for label cryptography.

Recoverable at the call site:
- DiscoveryError      -> fall back to the last known trust set, else no trust
- AuthenticationError -> drop the label
- InvalidLabelError   -> drop the label
- SequenceExhaustedError -> re-establish a fresh TransactionKey

Campaign-invalidating (never retried automatically):
- KeyEncapsulationError, KeyDecapsulationError, CampaignError
"""


class OpjaError(Exception):
    pass


class EntropyError(OpjaError):
    pass


class DiscoveryError(OpjaError):
    def __init__(self, authority_name: str, reason: str):
        self.authority_name = authority_name
        self.reason = reason
        super().__init__(f"Key discovery failed for {authority_name}: {reason}")


class KeyEncapsulationError(OpjaError):
    pass


class KeyDecapsulationError(OpjaError):
    pass


class SequenceExhaustedError(OpjaError):
    pass


class AuthenticationError(OpjaError):
    pass


class InvalidLabelError(OpjaError):
    pass


class CampaignError(OpjaError):
    pass
