"""
Cryptography Layer - Content Hashing
Transaction ids and pool digests are SHA-256 over canonical JSON
"""
import hashlib
import json
from typing import Any, Dict


def canonical_bytes(data: Dict[str, Any]) -> bytes:
    """
    Encode a transaction or pool record so that equal content gives equal bytes.
    Keys are sorted and separators carry no whitespace.
    """
    return json.dumps(data, sort_keys=True, separators=(',', ':')).encode('utf-8')

def hash_hex(data: bytes) -> str:
    """Transaction id: hex SHA-256 of an encoded transaction"""
    return hashlib.sha256(data).hexdigest()

def hash_dict_hex(data: Dict[str, Any]) -> str:
    return hash_hex(canonical_bytes(data))
