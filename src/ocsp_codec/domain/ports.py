"""
Ports — Protocol-based interfaces between the codec and its collaborators.

ResponseSigner is the one capability the codec consumes: something bound
to a private key that can sign a pre-computed digest. The other three
protocols describe what the adapters offer, so callers can depend on the
contract instead of the concrete classes.

Each port is a Protocol (structural typing) so adapters satisfy
the contract simply by implementing the methods — no inheritance.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ocsp_codec.domain.models import (
    Request,
    RequestOptions,
    Response,
    ResponseTemplate,
    SignerParameters,
)
from ocsp_codec.railway import Result


@runtime_checkable
class ResponseSigner(Protocol):
    """
    Port: sign a digest with a private key.

    `sign` receives the digest of the to-be-signed bytes, already computed
    with `params.hash`, and must return the raw signature value. Randomness
    (PSS salt, ECDSA nonce) is the signer's concern.
    """

    def public_key(self) -> PublicKeyTypes: ...

    def sign(self, digest: bytes, params: SignerParameters) -> bytes: ...


@runtime_checkable
class RequestCodec(Protocol):
    """Port: build and decode single-certificate OCSP requests."""

    def create(
        self,
        cert: x509.Certificate,
        issuer: x509.Certificate,
        options: RequestOptions | None = None,
    ) -> Result[bytes]: ...

    def marshal(self, request: Request) -> Result[bytes]: ...

    def parse(self, der: bytes) -> Result[Request]: ...


@runtime_checkable
class ResponseParser(Protocol):
    """Port: decode and verify an OCSP response."""

    def parse(self, der: bytes, issuer: x509.Certificate | None = None) -> Result[Response]: ...

    def parse_for_cert(
        self,
        der: bytes,
        cert: x509.Certificate | None = None,
        issuer: x509.Certificate | None = None,
    ) -> Result[Response]: ...


@runtime_checkable
class ResponseBuilder(Protocol):
    """Port: produce a signed OCSP response from a template."""

    def create(
        self,
        issuer: x509.Certificate,
        responder_cert: x509.Certificate,
        template: ResponseTemplate,
        signer: ResponseSigner,
    ) -> Result[bytes]: ...
