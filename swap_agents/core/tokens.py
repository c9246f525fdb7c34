# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Compact signed tokens (`header.payload.signature`).

Tokens look like JWTs so standard tooling can decode them, but the
signature is an EIP-191 personal signature over `header.payload` made with
an Ethereum key. Verification recovers the signer address instead of
checking against a shared secret.
"""

import base64
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_account import Account
from eth_account.messages import encode_defunct


logger = logging.getLogger(__name__)

TOKEN_ALG = "ES256K-R"

TOKEN_PATTERN = re.compile(r"\b[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b")


class TokenError(ValueError):
    """Token could not be decoded or did not verify."""
    pass


@dataclass(frozen=True)
class DecodedToken:
    header: Dict[str, Any]
    claims: Dict[str, Any]
    signer: str


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _encode_segment(obj: Dict[str, Any]) -> str:
    return _b64url_encode(json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8"))


def encode_token(claims: Dict[str, Any], account, token_type: str) -> str:
    """Signs `claims` with `account` and returns the compact token."""
    header = {"alg": TOKEN_ALG, "typ": token_type}
    signing_input = f"{_encode_segment(header)}.{_encode_segment(claims)}"
    signed = account.sign_message(encode_defunct(text=signing_input))
    return f"{signing_input}.{_b64url_encode(bytes(signed.signature))}"


def decode_token(token: str) -> DecodedToken:
    """Decodes a token and recovers its signer. Does not check expiry or issuer."""
    if not isinstance(token, str):
        raise TokenError("Token must be a string")
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise TokenError("Token must have three dot-separated segments")

    header_segment, payload_segment, signature_segment = parts
    try:
        header = json.loads(_b64url_decode(header_segment))
        claims = json.loads(_b64url_decode(payload_segment))
        signature = _b64url_decode(signature_segment)
    except ValueError as e:
        raise TokenError(f"Token is not valid base64url JSON: {e}") from e

    if not isinstance(header, dict) or not isinstance(claims, dict):
        raise TokenError("Token header and payload must be JSON objects")
    if header.get("alg") != TOKEN_ALG:
        raise TokenError(f"Unsupported token algorithm: {header.get('alg')}")

    try:
        signer = Account.recover_message(
            encode_defunct(text=f"{header_segment}.{payload_segment}"),
            signature=signature,
        )
    except Exception as e:
        raise TokenError(f"Token signature could not be recovered: {e}") from e

    return DecodedToken(header=header, claims=claims, signer=signer)


def verify_token(
    token: str,
    expected_signer: Optional[str] = None,
    token_type: Optional[str] = None,
    now: Optional[float] = None,
) -> DecodedToken:
    """Decodes a token and checks signer, type and expiry."""
    decoded = decode_token(token)

    if token_type is not None and decoded.header.get("typ") != token_type:
        raise TokenError(
            f"Expected a {token_type} token, got {decoded.header.get('typ')}"
        )

    if decoded.claims.get("iss", "").lower() != decoded.signer.lower():
        raise TokenError("Token issuer does not match its signature")

    if expected_signer is not None and decoded.signer.lower() != expected_signer.lower():
        raise TokenError(f"Token signed by untrusted issuer {decoded.signer}")

    exp = decoded.claims.get("exp")
    if exp is not None:
        current = time.time() if now is None else now
        if current >= float(exp):
            raise TokenError("Token has expired")

    return decoded


def _decode_unverified(token: str, index: int) -> Optional[Dict[str, Any]]:
    parts = token.split(".") if isinstance(token, str) else []
    if len(parts) != 3:
        return None
    try:
        segment = json.loads(_b64url_decode(parts[index]))
    except ValueError:
        return None
    return segment if isinstance(segment, dict) else None


def decode_token_payload(token: str) -> Optional[Dict[str, Any]]:
    """Best-effort payload decode for logging; None if `token` is not token-shaped."""
    return _decode_unverified(token, 1)


def token_type_of(token: str) -> Optional[str]:
    """Unverified `typ` header of a token, used to tell tokens apart in free text."""
    header = _decode_unverified(token, 0)
    return header.get("typ") if header else None


def find_tokens(text: str) -> List[str]:
    """Returns every token-shaped substring of `text` whose payload decodes."""
    return [
        match for match in TOKEN_PATTERN.findall(text or "")
        if decode_token_payload(match) is not None
    ]


def log_token_payload(token: str, label: str, enabled: bool = True) -> None:
    if not enabled or not token:
        return
    payload = decode_token_payload(token)
    if payload is None:
        logger.warning(f"Could not decode {label} as a token")
        return
    logger.debug(f"{label} payload: {json.dumps(payload, indent=2)}")
