# opja_core/campaign.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict

from .constants import ENC_SIZE, PUBLIC_KEY_SIZE, TRANSACTION_ID_MAX_LEN
from .errors import CampaignError
from .logger import get_logger
from .utils import b64url_e, b64url_d

log = get_logger("OPJA.Campaign")


def check_transaction_id(transaction_id: str) -> str:
    if not (isinstance(transaction_id, str) and 0 < len(transaction_id) <= TRANSACTION_ID_MAX_LEN
            and transaction_id.isascii() and transaction_id.isalnum()):
        raise CampaignError(
            f"transaction id must be 1-{TRANSACTION_ID_MAX_LEN} ASCII alphanumerics: {transaction_id!r}")
    return transaction_id


@dataclass(frozen=True)
class Campaign:
    """
    Activation campaign as configured on the receiving side.

    authority_name names the sending matching system; it is also the
    key-schedule context shared by both sides. Keys are raw 32-byte values;
    dict form carries them as unpadded base64url.
    """
    authority_name: str
    transaction_id: str
    encapsulated_key: bytes
    sender_public_key: bytes
    receiver_public_key: bytes

    def __post_init__(self):
        if not self.authority_name:
            raise CampaignError("authority name is required")
        check_transaction_id(self.transaction_id)
        for name, size in (("encapsulated_key", ENC_SIZE),
                           ("sender_public_key", PUBLIC_KEY_SIZE),
                           ("receiver_public_key", PUBLIC_KEY_SIZE)):
            value = getattr(self, name)
            if not isinstance(value, (bytes, bytearray)) or len(value) != size:
                raise CampaignError(f"{name} must be {size} bytes")

    @property
    def context_info(self) -> bytes:
        return self.authority_name.encode("utf-8")

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for name in ("encapsulated_key", "sender_public_key", "receiver_public_key"):
            d[name] = b64url_e(d[name])
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Campaign":
        try:
            return cls(
                authority_name=data["authority_name"],
                transaction_id=data["transaction_id"],
                encapsulated_key=b64url_d(data["encapsulated_key"]),
                sender_public_key=b64url_d(data["sender_public_key"]),
                receiver_public_key=b64url_d(data["receiver_public_key"]),
            )
        except KeyError as e:
            raise CampaignError(f"missing campaign field: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise CampaignError(f"invalid campaign field: {e}") from e


@dataclass(frozen=True)
class CampaignStatus:
    valid: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.valid


def validate_campaign(campaign: Campaign, authority, own_authority_name: str) -> CampaignStatus:
    """
    Fail-closed trust check against freshly looked-up directory records:
    the sender key must be published by the campaign's authority and the
    receiver key by our own authority.
    """
    if not authority.is_trusted(campaign.authority_name, campaign.sender_public_key, fresh=True):
        status = CampaignStatus(False, f"sender key not published by {campaign.authority_name}")
    elif not authority.is_trusted(own_authority_name, campaign.receiver_public_key, fresh=True):
        status = CampaignStatus(False, f"receiver key not published by {own_authority_name}")
    else:
        status = CampaignStatus(True)

    if not status:
        log.warning(f"[CAMPAIGN] {campaign.authority_name}/{campaign.transaction_id} invalid: {status.reason}")
    return status
