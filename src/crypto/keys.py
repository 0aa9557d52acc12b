"""
Cryptography Layer - Owner Keys
Every UTXO is locked to an owner address. An address is the owner's raw
ed25519 public key in base64; spending requires a signature under it.
"""
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives import serialization
from cryptography.exceptions import InvalidSignature
import base64
import binascii

PUBLIC_KEY_LENGTH = 32
SEED_LENGTH = 32


class KeyPair:
    """Spending key of one owner"""

    def __init__(self, private_key=None, seed: bytes = None):
        if private_key is not None and seed is not None:
            raise ValueError("Pass a private_key or a seed, not both")
        if seed is not None:
            private_key = _key_from_seed(seed)
        self.private_key = private_key or ed25519.Ed25519PrivateKey.generate()
        self.public_key = self.private_key.public_key()

    def sign(self, data: bytes) -> bytes:
        """Signature over the message of one transaction input"""
        return self.private_key.sign(data)

    def get_public_key_bytes(self) -> bytes:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )

    def get_address(self) -> str:
        """Address that outputs paying this owner are locked to"""
        return public_key_to_address(self.get_public_key_bytes())

    @staticmethod
    def from_seed(seed: bytes) -> 'KeyPair':
        """Reproducible owner for demos and tests"""
        return KeyPair(seed=seed)

    @staticmethod
    def verify(public_key_bytes: bytes, signature: bytes, data: bytes) -> bool:
        """
        True only if signature is a valid ed25519 signature of data by the
        owner of public_key_bytes. Malformed keys or signatures count as
        invalid, never as errors.
        """
        try:
            owner = ed25519.Ed25519PublicKey.from_public_bytes(public_key_bytes)
            owner.verify(signature, data)
        except (InvalidSignature, ValueError, TypeError):
            return False
        return True


def _key_from_seed(seed: bytes) -> ed25519.Ed25519PrivateKey:
    if len(seed) != SEED_LENGTH:
        raise ValueError(f"Owner seed must be {SEED_LENGTH} bytes, got {len(seed)}")
    return ed25519.Ed25519PrivateKey.from_private_bytes(seed)


def public_key_to_address(public_key_bytes: bytes) -> str:
    return base64.b64encode(public_key_bytes).decode()


def address_to_public_key(address: str) -> bytes:
    """
    Owner public key behind an output address.
    Raises ValueError when the address is not base64 of a 32-byte key.
    """
    try:
        raw = base64.b64decode(address, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"Malformed address: {address!r}") from e
    if len(raw) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"Address must decode to {PUBLIC_KEY_LENGTH} bytes, got {len(raw)}")
    return raw
