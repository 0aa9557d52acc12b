"""
Cryptography Layer - Message Signing with Domain Separation
Input signatures cannot be replayed on another chain or message type
"""
from typing import Dict, Any, Optional
from .hashing import canonical_bytes
from .keys import KeyPair, address_to_public_key


class SignedMessage:
    """Domain-separated message whose canonical bytes are what gets signed"""

    DOMAIN_TX_INPUT = "TX_INPUT"

    def __init__(self, domain: str, chain_id: str, data: Dict[str, Any]):
        self.domain = domain
        self.chain_id = chain_id
        self.data = data
        self.signature = None

    def get_signing_bytes(self) -> bytes:
        """Get deterministic bytes for signing with domain separation"""
        return canonical_bytes({
            "domain": self.domain,
            "chain_id": self.chain_id,
            "data": self.data
        })

    def sign(self, keypair: KeyPair) -> bytes:
        """Sign the message with given keypair"""
        self.signature = keypair.sign(self.get_signing_bytes())
        return self.signature

    def verify(self, address: str) -> bool:
        """Verify the attached signature against an owner address"""
        return verify_signature(address, self.get_signing_bytes(), self.signature)


def verify_signature(address: str, message: bytes, signature: Optional[bytes]) -> bool:
    """
    Signature oracle: does `signature` over `message` verify under the owner
    `address`? Unsigned inputs and malformed addresses verify as False.
    """
    if signature is None:
        return False
    try:
        public_key_bytes = address_to_public_key(address)
    except ValueError:
        return False
    return KeyPair.verify(public_key_bytes, signature, message)
