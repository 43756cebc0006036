"""Publishing domain: customer domains and the publish gate."""

from pagesmith.publishing.domains import DomainStore
from pagesmith.publishing.models import Domain, PublishResult, Subdirectory
from pagesmith.publishing.paths import (
    build_published_url,
    clean_domain_name,
    normalize_path,
    validate_slug,
)
from pagesmith.publishing.resolver import PublishConflictResolver
from pagesmith.publishing.verification import DnsTxtVerifier, VerificationResult

__all__ = [
    "DnsTxtVerifier",
    "Domain",
    "DomainStore",
    "PublishConflictResolver",
    "PublishResult",
    "Subdirectory",
    "VerificationResult",
    "build_published_url",
    "clean_domain_name",
    "normalize_path",
    "validate_slug",
]
