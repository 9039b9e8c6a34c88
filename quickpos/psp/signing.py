"""
Signature strategies used to authenticate outbound requests and verify
inbound provider callbacks.

Every strategy carries its own secret and canonicalization rule and exposes:
    sign(fields)     -> digest for the given fields
    verify(payload)  -> CallbackEnvelope, or raises SignatureVerificationError

Verification always works on a copy of the payload with the signature field
removed, treats a missing signed field as a failure (never as ""), and
compares digests with hmac.compare_digest.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from quickpos.psp.errors import SignatureVerificationError
from quickpos.schemas_pkg.payments import CallbackEnvelope


class _Secret:
    """Marks where the secret is spliced into a concatenation."""

    def __repr__(self):
        return "SECRET"


SECRET = _Secret()


class MissingSignedField(KeyError):
    pass


def stringify(value: Any) -> str:
    """Render a field value the way providers put it in a string-to-sign."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _digest(algorithm: str, message: str, key: Optional[str] = None) -> str:
    data = message.encode("utf-8")
    if key is not None:
        return hmac.new(key.encode("utf-8"), data, algorithm).hexdigest()
    return hashlib.new(algorithm, data).hexdigest()


class SignatureStrategy(ABC):
    """Base strategy. Subclasses only define how a digest is computed."""

    signature_field: str = "signature"
    uppercase: bool = False

    @abstractmethod
    def sign(self, fields: Mapping[str, Any]) -> str:
        """Compute the digest for ``fields`` (signature field already removed)."""

    def _finish(self, hexdigest: str) -> str:
        return hexdigest.upper() if self.uppercase else hexdigest

    def verify(self, payload: Mapping[str, Any]) -> CallbackEnvelope:
        claimed = payload.get(self.signature_field)
        if claimed is None or claimed == "":
            raise SignatureVerificationError(f"Missing signature field: {self.signature_field}")

        fields = strip_signature(payload, self.signature_field)
        try:
            expected = self.sign(fields)
        except MissingSignedField as e:
            raise SignatureVerificationError(f"Missing signed field: {e.args[0]}")

        if not hmac.compare_digest(expected.encode("utf-8"), str(claimed).encode("utf-8")):
            raise SignatureVerificationError("Invalid signature")
        return CallbackEnvelope(payload=fields, signature=str(claimed))

    def __repr__(self):
        # never include secret material
        return f"<{self.__class__.__name__}(field={self.signature_field!r})>"


class ConcatHashSignature(SignatureStrategy):
    """
    Keyed concatenation hash.

    ``parts`` lists payload keys in signing order; ``SECRET`` marks where the
    secret goes (appended when absent). With ``use_hmac`` the secret is the
    HMAC key instead and must not appear in ``parts``.

    Example (Midtrans):
        ConcatHashSignature(key, ["order_id", "status_code", "gross_amount"],
                            algorithm="sha512", signature_field="signature_key")
    """

    def __init__(
        self,
        secret: str,
        parts: Sequence[Union[str, _Secret]],
        algorithm: str = "md5",
        separator: str = "",
        uppercase: bool = False,
        use_hmac: bool = False,
        signature_field: str = "signature",
    ):
        parts = list(parts)
        if use_hmac and SECRET in parts:
            raise ValueError("HMAC signatures take the secret as key, not as a part")
        if not use_hmac and SECRET not in parts:
            parts.append(SECRET)
        self._secret = secret
        self.parts = tuple(parts)
        self.algorithm = algorithm
        self.separator = separator
        self.uppercase = uppercase
        self.use_hmac = use_hmac
        self.signature_field = signature_field

    def string_to_sign(self, fields: Mapping[str, Any]) -> str:
        values = []
        for part in self.parts:
            if part is SECRET:
                values.append(self._secret)
                continue
            value = fields.get(part)
            if value is None:
                raise MissingSignedField(part)
            values.append(stringify(value))
        return self.separator.join(values)

    def sign(self, fields: Mapping[str, Any]) -> str:
        message = self.string_to_sign(fields)
        key = self._secret if self.use_hmac else None
        return self._finish(_digest(self.algorithm, message, key))


class HmacQuerySignature(SignatureStrategy):
    """
    Canonical query-string HMAC: every field but the signature, sorted by
    key, joined as ``key=value`` with ``&``. A JSON null is rendered as ``null``.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "sha256",
        uppercase: bool = False,
        signature_field: str = "signature",
        required: Sequence[str] = (),
    ):
        self._secret = secret
        self.algorithm = algorithm
        self.uppercase = uppercase
        self.signature_field = signature_field
        self.required = tuple(required)

    def canonical_string(self, fields: Mapping[str, Any]) -> str:
        for key in self.required:
            if fields.get(key) is None:
                raise MissingSignedField(key)
        return "&".join(
            f"{key}={'null' if fields[key] is None else stringify(fields[key])}"
            for key in sorted(fields)
            if key != self.signature_field
        )

    def sign(self, fields: Mapping[str, Any]) -> str:
        return self._finish(_digest(self.algorithm, self.canonical_string(fields), self._secret))


class EncodedPayloadSignature(SignatureStrategy):
    """
    Encode-then-hash: compact JSON, base64, secret appended, hashed.

    Used to sign the adapter's own outbound body (``sign_body``) and, for
    providers that reuse the rule, to verify webhooks.
    """

    def __init__(self, secret: str, algorithm: str = "md5", signature_field: str = "sign"):
        self._secret = secret
        self.algorithm = algorithm
        self.signature_field = signature_field

    @staticmethod
    def serialize(data: Mapping[str, Any]) -> str:
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False, default=stringify)

    def sign_body(self, body: str) -> str:
        encoded = base64.b64encode(body.encode("utf-8")).decode("ascii")
        return self._finish(_digest(self.algorithm, encoded + self._secret))

    def sign(self, fields: Mapping[str, Any]) -> str:
        return self.sign_body(self.serialize(fields))


class CallbackTokenSignature(SignatureStrategy):
    """Shared static token echoed back by the provider on every callback."""

    def __init__(self, token: str, signature_field: str = "callback_token"):
        self._token = token
        self.signature_field = signature_field

    def sign(self, fields: Mapping[str, Any]) -> str:
        return self._token


def strip_signature(payload: Mapping[str, Any], field: str) -> Dict[str, Any]:
    """Copy of ``payload`` without ``field``."""
    return {k: v for k, v in payload.items() if k != field}
