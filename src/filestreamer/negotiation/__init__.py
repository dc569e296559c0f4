"""
Content negotiation steps that may substitute another file for the one
requested: compressed text variants and transcoded images.
"""

from .encoding import CompressedVariantCache, EncodedVariant, parse_accept_encoding
from .images import ImageNegotiator

__all__ = [
    "CompressedVariantCache",
    "EncodedVariant",
    "ImageNegotiator",
    "parse_accept_encoding",
]
