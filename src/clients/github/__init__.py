from .client import GitHubClient
from .encoding import DECODING_ERROR, decode_base64_utf8, encode_base64_utf8
from .identity import IdentityVerifier

__all__ = [
    "DECODING_ERROR",
    "GitHubClient",
    "IdentityVerifier",
    "decode_base64_utf8",
    "encode_base64_utf8",
]
