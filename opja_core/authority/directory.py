from opja_core.authority.models import TrustedKeySet


class KeyDirectory:
    """
    Contract for the external key discovery mechanism.

    lookup() returns the authority's complete current key set, or raises
    DiscoveryError on network or parse failure. It may block.
    """
    name: str = "base"

    def lookup(self, authority_name: str) -> TrustedKeySet:
        raise NotImplementedError

    def close(self) -> None:
        return
