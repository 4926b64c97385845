"""
opja_core.activation
--------------------
The two ends of label activation:

- MatchingSystem: establishes a transaction key with a DSP and seals labels
- LabelReceiver: validates campaigns, derives and caches transaction keys,
  and opens labels from inbound messages

Results only ever contain labels that opened cleanly. A missing key, a
forged label or a malformed one is absent from the result, which
downstream bidding treats as "ignore" rather than False.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple

from . import hpke
from .authority import KeyAuthority
from .cache import LabelKeyCache, load_key_cache
from .campaign import Campaign, CampaignStatus, check_transaction_id, validate_campaign
from .errors import CampaignError
from .keys import Identity, KeyStore
from .labels import LabelSealer, try_open_label
from .logger import get_logger
from .message import LabelMessage
from .utils import key_hint, wipe

log = get_logger("OPJA.Activation")


class MatchingSystem:
    """Sender side, identified by its authority name."""

    def __init__(self, identity: Identity, key_store: Optional[KeyStore] = None,
                 authority: Optional[KeyAuthority] = None):
        self.identity = identity
        self.key_store = key_store or KeyStore()
        self.authority = authority

    @property
    def name(self) -> str:
        return self.identity.name

    def rotate(self) -> Identity:
        self.identity = self.key_store.rotate(self.identity)
        return self.identity

    def start_transaction(
        self,
        transaction_id: str,
        receiver_public_key: bytes,
        receiver_authority: Optional[str] = None,
    ) -> Tuple[Campaign, LabelSealer]:
        """
        Encapsulate a fresh transaction key to the receiver with our current
        identity key. Returns the campaign configuration to hand to the
        receiver and a sealer for this transaction's labels.

        With a KeyAuthority and receiver_authority set, the receiver key must
        be published by that authority.
        """
        check_transaction_id(transaction_id)
        if self.authority is not None and receiver_authority is not None:
            if not self.authority.is_trusted(receiver_authority, receiver_public_key, fresh=True):
                raise CampaignError(f"receiver key {key_hint(receiver_public_key)} "
                                    f"not published by {receiver_authority}")

        context_info = self.name.encode("utf-8")
        with self.key_store.current(self.identity) as sender:
            enc, key = hpke.encapsulate(sender.private, receiver_public_key, context_info)
            sender_public = sender.public
        try:
            campaign = Campaign(
                authority_name=self.name,
                transaction_id=transaction_id,
                encapsulated_key=enc,
                sender_public_key=sender_public,
                receiver_public_key=bytes(receiver_public_key),
            )
            sealer = LabelSealer(key)
        finally:
            wipe(key)
        log.info(f"[SENDER] transaction {transaction_id} established to {key_hint(receiver_public_key)}")
        return campaign, sealer


class LabelReceiver:
    """DSP side: owns the identity whose keys campaigns encapsulate to."""

    def __init__(self, identity: Identity, authority: KeyAuthority,
                 cache: Optional[LabelKeyCache] = None,
                 key_store: Optional[KeyStore] = None):
        self.identity = identity
        self.authority = authority
        self.cache = cache or load_key_cache()
        self.key_store = key_store or KeyStore()

    def rotate(self) -> Identity:
        self.identity = self.key_store.rotate(self.identity)
        return self.identity

    def establish(self, campaign: Campaign) -> CampaignStatus:
        """
        Validate the campaign's keys against the directory and, if trusted,
        derive and cache its transaction key. Returns the validation status;
        KeyDecapsulationError propagates for malformed key material.
        """
        status = validate_campaign(campaign, self.authority, self.identity.name)
        if not status:
            self.cache.evict(campaign.authority_name, campaign.transaction_id)
            return status

        own = self.key_store.find(self.identity, campaign.receiver_public_key)
        if own is None:
            status = CampaignStatus(False, "receiver key is not in the local key ring")
            log.warning(f"[RECEIVER] {campaign.authority_name}/{campaign.transaction_id} invalid: {status.reason}")
            return status

        with own:
            key = hpke.decapsulate(campaign.encapsulated_key, own.private,
                                   campaign.sender_public_key, campaign.context_info)
        try:
            self.cache.store(campaign.authority_name, campaign.transaction_id, key)
        finally:
            wipe(key)
        log.info(f"[RECEIVER] transaction {campaign.authority_name}/{campaign.transaction_id} established")
        return status

    def open_label(self, authority_name: str, transaction_id: str, sealed: str) -> Optional[bool]:
        """
        Open with the cached key only; the directory is not consulted here.
        A withdrawn sender key keeps working until the cache entry expires
        or establish() is called again for the campaign, which evicts it.
        """
        key =self.cache.lookup(authority_name, transaction_id)
        if key is None:
            log.debug(f"[RECEIVER] no key for {authority_name}/{transaction_id}")
            return None
        try:
            return try_open_label(key, sealed, transaction_id)
        finally:
            wipe(key)

    def open_message(self, message: LabelMessage) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        for transaction_id, sealed in message.labels:
            label = self.open_label(message.authority_name, transaction_id, sealed)
            if label is None:
                continue
            results[transaction_id] = label
        return results
