# opja_core/authority/providers/doh_directory.py
import re
from typing import List

import requests

from opja_core.authority.directory import KeyDirectory
from opja_core.authority.models import TrustedKeySet, parse_records
from opja_core.constants import RECORD_SUBDOMAIN
from opja_core.errors import DiscoveryError
from opja_core.logger import get_logger

log = get_logger("OPJA.Directory.DoH")

TXT_TYPE = 16
_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"')


def _txt_strings(data: str) -> str:
    # TXT rdata arrives as one or more quoted character-strings
    chunks = _QUOTED.findall(data)
    return "".join(chunks) if chunks else data


class DohDirectory(KeyDirectory):
    """
    Reads an authority's key record over DNS-over-HTTPS (JSON API).

    Queries TXT records at _opja.<authority_name>; each answer string holds
    one public key. Any transport, HTTP, DNS or record error raises
    DiscoveryError.
    """
    name = "doh"

    def __init__(self, base_url: str, timeout: float = 5.0, ttl: float = 3600.0,
                 subdomain: str = RECORD_SUBDOMAIN, session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.ttl = ttl
        self.subdomain = subdomain
        self._session = session or requests.Session()

    def record_name(self, authority_name: str) -> str:
        return f"{self.subdomain}.{authority_name.rstrip('.')}"

    def fetch_records(self, authority_name: str) -> List[str]:
        qname = self.record_name(authority_name)
        log.debug(f"[DOH] → {self.base_url} | name={qname}")
        try:
            res = self._session.get(
                self.base_url,
                params={"name": qname, "type": "TXT"},
                headers={"Accept": "application/dns-json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DiscoveryError(authority_name, f"request failed: {e}") from e

        if not res.ok:
            raise DiscoveryError(authority_name, f"HTTP {res.status_code} {res.reason}")
        try:
            body = res.json()
        except ValueError as e:
            raise DiscoveryError(authority_name, f"invalid JSON response: {e}") from e

        if not isinstance(body, dict):
            raise DiscoveryError(authority_name, f"unexpected JSON response: {type(body).__name__}")
        status = body.get("Status", 0)
        if status != 0:
            raise DiscoveryError(authority_name, f"DNS status {status}")
        answers = body.get("Answer") or []
        if not isinstance(answers, list) or not all(isinstance(a, dict) for a in answers):
            raise DiscoveryError(authority_name, "malformed Answer section")
        answers = [a for a in answers if a.get("type") == TXT_TYPE]
        if not answers:
            raise DiscoveryError(authority_name, f"no TXT record at {qname}")
        if not all(isinstance(a.get("data"), str) for a in answers):
            raise DiscoveryError(authority_name, "TXT answer without string data")
        return [_txt_strings(a["data"]) for a in answers]

    def lookup(self, authority_name: str) -> TrustedKeySet:
        records = self.fetch_records(authority_name)
        try:
            keys = parse_records(records)
        except ValueError as e:
            raise DiscoveryError(authority_name, str(e)) from e
        log.info(f"[DOH] {authority_name} keys={len(keys)}")
        return TrustedKeySet.of(authority_name, keys, ttl=self.ttl)

    def close(self) -> None:
        self._session.close()
