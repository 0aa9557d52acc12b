"""Crypto layer initialization"""
from .keys import KeyPair, public_key_to_address, address_to_public_key
from .signature import SignedMessage, verify_signature
from .hashing import canonical_bytes, hash_hex, hash_dict_hex

__all__ = ['KeyPair', 'public_key_to_address', 'address_to_public_key',
           'SignedMessage', 'verify_signature',
           'canonical_bytes', 'hash_hex', 'hash_dict_hex']
