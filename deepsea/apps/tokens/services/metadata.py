"""
Token metadata inspection.

Lists the active tokens of a collection (local ledger or deployed contract),
resolves each metadata URI and optionally checks that the URI answers and
fetches the JSON document behind it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings

from ..errors import NotFound
from ..ledger import TokenLedger

logger = logging.getLogger(__name__)


@dataclass
class TokenMetadata:
    id: int
    name: str
    description: str
    max_supply: int
    current_supply: int
    is_active: bool
    uri: str
    accessible: bool = False
    status_code: Optional[int] = None
    metadata: Optional[Any] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "max_supply": self.max_supply,
            "current_supply": self.current_supply,
            "is_active": self.is_active,
            "uri": self.uri,
            "accessible": self.accessible,
            "status_code": self.status_code,
            "metadata": self.metadata,
        }


@dataclass
class MetadataResult:
    success: bool
    tokens: List[TokenMetadata] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return len(self.tokens)

    @property
    def accessible_tokens(self) -> int:
        return sum(1 for token in self.tokens if token.accessible)

    @property
    def inaccessible_tokens(self) -> int:
        return self.total_tokens - self.accessible_tokens

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "tokens": [token.as_dict() for token in self.tokens],
            "total_tokens": self.total_tokens,
            "accessible_tokens": self.accessible_tokens,
            "inaccessible_tokens": self.inaccessible_tokens,
        }


# ============================================================
# TOKEN LISTING
# ============================================================

def ledger_token(ledger: TokenLedger, token_id: int) -> Optional[TokenMetadata]:
    record = ledger.get_token_info(token_id)
    if record is None or not record.is_active:
        return None
    return TokenMetadata(uri=ledger.uri(token_id), **record.as_dict())


def contract_token(service, token_id: int) -> Optional[TokenMetadata]:
    """Token of a deployed collection (CollectionContractService)"""
    try:
        info = service.get_token_info(token_id)
    except Exception as e:
        logger.debug(f"getTokenInfo({token_id}) failed: {e}")
        return None
    if not info["is_active"]:
        return None
    return TokenMetadata(
        id=token_id,
        name=info["name"],
        description=info["description"],
        max_supply=info["max_supply"],
        current_supply=info["current_supply"],
        is_active=True,
        uri=service.get_uri(token_id),
    )


def list_tokens(source, max_token_ids: Optional[int] = None) -> List[TokenMetadata]:
    """Active tokens 1..N of a ledger or contract service; stops at the first gap"""
    lookup = ledger_token if isinstance(source, TokenLedger) else contract_token
    tokens = []
    for token_id in range(1, (max_token_ids or settings.METADATA_MAX_TOKEN_IDS) + 1):
        token = lookup(source, token_id)
        if token is None:
            break
        tokens.append(token)
    return tokens


# ============================================================
# URI CHECKS
# ============================================================

def probe_uri(uri: str, timeout: Optional[float] = None) -> Optional[int]:
    """HTTP status of ``uri``, or None when it cannot be reached"""
    try:
        response = requests.get(uri, timeout=timeout or settings.METADATA_REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.warning(f"Metadata URI {uri} unreachable: {e}")
        return None
    return response.status_code


def fetch_metadata(uri: str, timeout: Optional[float] = None) -> Optional[Any]:
    """JSON document behind ``uri``, or None when unavailable or not JSON"""
    try:
        response = requests.get(uri, timeout=timeout or settings.METADATA_REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as e:
        logger.warning(f"Could not fetch metadata from {uri}: {e}")
    except ValueError:
        logger.warning(f"Metadata at {uri} is not valid JSON")
    return None


def describe_tokens(
    source,
    token_id: Optional[int] = None,
    max_token_ids: Optional[int] = None,
    check_accessibility: bool = True,
    fetch: bool = True,
) -> MetadataResult:
    """
    Collect token records with their URIs, then check and fetch each URI.

    Args:
        source: TokenLedger or CollectionContractService
        token_id: Inspect only this token
        max_token_ids: Highest token id to look at when listing
        check_accessibility: Probe each URI for an HTTP 2xx answer
        fetch: Also download the JSON document of accessible URIs
    """
    if token_id is not None:
        lookup = ledger_token if isinstance(source, TokenLedger) else contract_token
        try:
            token = lookup(source, token_id)
        except NotFound:
            token = None
        if token is None:
            return MetadataResult(success=False, error=f"Token ID {token_id} is not active")
        tokens = [token]
    else:
        tokens = list_tokens(source, max_token_ids)

    if not tokens:
        return MetadataResult(success=False, error="No active tokens found in contract")

    if check_accessibility:
        for token in tokens:
            token.status_code = probe_uri(token.uri)
            token.accessible = token.status_code is not None and 200 <= token.status_code < 300
            if fetch and token.accessible:
                token.metadata = fetch_metadata(token.uri)

    return MetadataResult(success=True, tokens=tokens)
