"""DNS ownership checks for publish domains."""

from __future__ import annotations

import logging

import dns.exception
import dns.resolver
from pydantic import BaseModel

from pagesmith.errors import TransientIOError
from pagesmith.publishing.models import Domain

logger = logging.getLogger(__name__)


class VerificationResult(BaseModel):
    domain: Domain
    verified: bool
    details: str


class DnsTxtVerifier:
    """Looks up the verification TXT record of a domain.

    The owner proves control by publishing the domain's verification token
    as a TXT record on ``{prefix}.{domain}``.
    """

    def __init__(
        self,
        prefix: str = "_pagesmith-verify",
        timeout: float = 5.0,
        resolver: dns.resolver.Resolver | None = None,
    ) -> None:
        self.prefix = prefix
        self.timeout = timeout
        self._resolver = resolver

    @property
    def resolver(self) -> dns.resolver.Resolver:
        if self._resolver is None:
            self._resolver = dns.resolver.Resolver()
        return self._resolver

    def host_for(self, domain_name: str) -> str:
        return f"{self.prefix}.{domain_name}"

    def txt_records(self, host: str) -> list[str]:
        """Return every TXT string on ``host``; a missing record is an empty list.

        Raises:
            TransientIOError: The lookup itself failed (timeout, no reachable
                nameserver, bad resolver configuration).
        """
        try:
            answer = self.resolver.resolve(host, "TXT", lifetime=self.timeout)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return []
        except dns.exception.DNSException as exc:
            raise TransientIOError(f"DNS lookup for {host} failed: {exc}") from exc
        return [b"".join(rdata.strings).decode("utf-8", "replace") for rdata in answer]

    def check(self, domain: Domain) -> tuple[bool, str]:
        """Compare the published TXT records with the domain's token."""
        host = self.host_for(domain.name)
        records = self.txt_records(host)
        if domain.verification_token in records:
            return True, "TXT record found and matches"
        if not records:
            logger.info("No TXT record on %s yet", host)
            return False, f"No TXT record found for {host}; DNS changes can take a while to propagate"
        found = ", ".join(records)
        return False, f"TXT records found on {host}: {found}. Expected: {domain.verification_token}"
