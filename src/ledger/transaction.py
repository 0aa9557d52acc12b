"""
Ledger Layer - Transactions
Signed requests that spend UTXOs and create new outputs
"""
from decimal import Decimal
from typing import Dict, Any, List, Optional, Union
import base64
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from crypto.signature import SignedMessage
from crypto.keys import KeyPair
from crypto.hashing import canonical_bytes, hash_hex
from .amounts import Amount, to_amount, format_amount
from .utxo import UTXO


class Output:
    """Value locked to an owner address. Immutable."""

    __slots__ = ("_value", "_address")

    def __init__(self, value: Amount, address: str):
        object.__setattr__(self, "_value", to_amount(value))
        object.__setattr__(self, "_address", address)

    @property
    def value(self) -> Decimal:
        return self._value

    @property
    def address(self) -> str:
        return self._address

    def __setattr__(self, name, value):
        raise AttributeError("Output is immutable")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Output):
            return NotImplemented
        return self._value == other._value and self._address == other._address

    def __hash__(self) -> int:
        return hash((self._value, self._address))

    def __repr__(self) -> str:
        return f"Output({format_amount(self._value)}, {self._address[:12]}...)"

    def __reduce__(self):
        return (Output, (self._value, self._address))

    def to_dict(self) -> Dict[str, str]:
        return {"value": format_amount(self._value), "address": self._address}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Output':
        return cls(d["value"], d["address"])


class Input:
    """Reference to a spent UTXO plus the owner's signature. Immutable."""

    __slots__ = ("_prev_tx_hash", "_output_index", "_signature")

    def __init__(self, prev_tx_hash: str, output_index: int, signature: Optional[bytes] = None):
        object.__setattr__(self, "_prev_tx_hash", prev_tx_hash)
        object.__setattr__(self, "_output_index", output_index)
        object.__setattr__(self, "_signature", None if signature is None else bytes(signature))

    @property
    def prev_tx_hash(self) -> str:
        return self._prev_tx_hash

    @property
    def output_index(self) -> int:
        return self._output_index

    @property
    def signature(self) -> Optional[bytes]:
        return self._signature

    def __setattr__(self, name, value):
        raise AttributeError("Input is immutable")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Input):
            return NotImplemented
        return (self._prev_tx_hash, self._output_index, self._signature) == \
            (other._prev_tx_hash, other._output_index, other._signature)

    def __hash__(self) -> int:
        return hash((self._prev_tx_hash, self._output_index, self._signature))

    def __repr__(self) -> str:
        signed = "signed" if self._signature is not None else "unsigned"
        return f"Input({self._prev_tx_hash[:16]}..., {self._output_index}, {signed})"

    def __reduce__(self):
        return (Input, (self._prev_tx_hash, self._output_index, self._signature))

    def get_utxo(self) -> UTXO:
        return UTXO(self._prev_tx_hash, self._output_index)

    def with_signature(self, signature: bytes) -> 'Input':
        return Input(self._prev_tx_hash, self._output_index, signature)

    def to_signing_dict(self) -> Dict[str, Any]:
        return {"prev_tx_hash": self._prev_tx_hash, "output_index": self._output_index}

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict()
        d["signature"] = base64.b64encode(self._signature).decode() if self._signature else None
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Input':
        signature = base64.b64decode(d["signature"]) if d.get("signature") else None
        return cls(d["prev_tx_hash"], d["output_index"], signature)


class Transaction:
    """
    Ordered inputs and outputs bound to a chain id.

    Built incrementally (add_input, add_output, sign_input), then stamped with
    finalize(). The hash is computed lazily over the canonical encoding and
    cached until the next mutation. A finalized transaction refuses mutation.
    """

    def __init__(self, chain_id: str, inputs: Optional[List[Input]] = None,
                 outputs: Optional[List[Output]] = None):
        self.chain_id = chain_id
        self._inputs: List[Input] = list(inputs or [])
        self._outputs: List[Output] = list(outputs or [])
        self._hash: Optional[str] = None
        self._finalized = False

    @classmethod
    def coinbase(cls, value: Amount, address: str, chain_id: str) -> 'Transaction':
        """Input-less transaction minting value to address (genesis funding)"""
        tx = cls(chain_id, outputs=[Output(value, address)])
        tx.finalize()
        return tx

    @property
    def inputs(self) -> List[Input]:
        return list(self._inputs)

    @property
    def outputs(self) -> List[Output]:
        return list(self._outputs)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def num_inputs(self) -> int:
        return len(self._inputs)

    def num_outputs(self) -> int:
        return len(self._outputs)

    def get_input(self, index: int) -> Input:
        return self._inputs[index]

    def get_output(self, index: int) -> Output:
        return self._outputs[index]

    def _mutating(self):
        if self._finalized:
            raise ValueError("Transaction is finalized and cannot be modified")
        self._hash = None

    def add_input(self, prev_tx_hash: str, output_index: int):
        self._mutating()
        self._inputs.append(Input(prev_tx_hash, output_index))

    def remove_input(self, target: Union[int, UTXO]):
        """Remove an input by position or by the UTXO it spends"""
        self._mutating()
        if isinstance(target, UTXO):
            for i, tx_input in enumerate(self._inputs):
                if tx_input.get_utxo() == target:
                    del self._inputs[i]
                    return
            return
        del self._inputs[target]

    def add_output(self, value: Amount, address: str):
        self._mutating()
        self._outputs.append(Output(value, address))

    def add_signature(self, signature: bytes, index: int):
        self._mutating()
        self._inputs[index] = self._inputs[index].with_signature(signature)

    def sign_input(self, index: int, keypair: KeyPair) -> bytes:
        """Sign input `index` with keypair and attach the signature"""
        signature = keypair.sign(self.get_raw_data_to_sign(index))
        self.add_signature(signature, index)
        return signature

    def to_signing_dict(self, index: int) -> Dict[str, Any]:
        return {
            "index": index,
            "inputs": [tx_input.to_signing_dict() for tx_input in self._inputs],
            "outputs": [output.to_dict() for output in self._outputs]
        }

    def get_raw_data_to_sign(self, index: int) -> bytes:
        """
        Message the owner of input `index` signs: every input reference and
        output, with signatures left out, bound to the input position.
        """
        if index < 0 or index >= len(self._inputs):
            raise IndexError(f"Input index {index} out of range")
        msg = SignedMessage(
            domain=SignedMessage.DOMAIN_TX_INPUT,
            chain_id=self.chain_id,
            data=self.to_signing_dict(index)
        )
        return msg.get_signing_bytes()

    def to_data_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "inputs": [tx_input.to_dict() for tx_input in self._inputs],
            "outputs": [output.to_dict() for output in self._outputs]
        }

    def get_raw_tx(self) -> bytes:
        """Canonical encoding of the full transaction, signatures included"""
        return canonical_bytes(self.to_data_dict())

    def compute_hash(self) -> str:
        self._hash = hash_hex(self.get_raw_tx())
        return self._hash

    def get_hash(self) -> str:
        if self._hash is None:
            return self.compute_hash()
        return self._hash

    def content_hash(self) -> str:
        """Hash of the current content; reads the cache but never fills it"""
        if self._hash is not None:
            return self._hash
        return hash_hex(self.get_raw_tx())

    def finalize(self) -> str:
        """Stamp the hash and freeze the transaction"""
        tx_hash = self.compute_hash()
        self._finalized = True
        return tx_hash

    def copy(self) -> 'Transaction':
        """Unfinalized clone; inputs and outputs are immutable and shared"""
        return Transaction(self.chain_id, self._inputs, self._outputs)

    def __repr__(self) -> str:
        return (f"Transaction({self.content_hash()[:16]}..., "
                f"inputs={len(self._inputs)}, outputs={len(self._outputs)})")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        d = self.to_data_dict()
        d["tx_hash"] = self.get_hash()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Transaction':
        """Reconstruct from dictionary; a stored tx_hash must match"""
        tx = cls(
            d["chain_id"],
            [Input.from_dict(i) for i in d["inputs"]],
            [Output.from_dict(o) for o in d["outputs"]]
        )
        if d.get("tx_hash") and tx.get_hash() != d["tx_hash"]:
            raise ValueError("Transaction hash mismatch")
        return tx
