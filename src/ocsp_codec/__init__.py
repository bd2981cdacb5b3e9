"""
ocsp_codec — OCSP (RFC 6960) request/response codec.

Builds and parses single-certificate OCSP requests, parses and verifies
OCSP responses, and builds signed responses. DER handling is asn1crypto,
certificates and signatures are cryptography.

Built on the Railway-Oriented Programming (ROP) primitives in
`ocsp_codec.railway`: every public operation returns a Result.
"""

__version__ = "0.1.0"
