"""
Ledger Layer - UTXO Pool
Unspent outputs keyed by (transaction hash, output index)
"""
from decimal import Decimal
from typing import Dict, List, Optional, Union
import copy
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from crypto.hashing import hash_dict_hex
from .amounts import sum_amounts


class UTXO:
    """Identifier of one spendable output"""

    __slots__ = ("tx_hash", "index")

    def __init__(self, tx_hash: str, index: int):
        self.tx_hash = tx_hash
        self.index = index

    def _key(self):
        return (self.tx_hash, self.index)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UTXO):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __lt__(self, other: 'UTXO') -> bool:
        return self._key() < other._key()

    def __repr__(self) -> str:
        return f"UTXO({self.tx_hash[:16]}..., {self.index})"

    def to_key(self) -> str:
        return f"{self.tx_hash}:{self.index}"

    @classmethod
    def from_key(cls, key: str) -> 'UTXO':
        tx_hash, index = key.rsplit(":", 1)
        return cls(tx_hash, int(index))


class UTXOPool:
    """
    Exclusive mapping UTXO -> Output.

    A key present in the pool is spendable exactly once: removing it models
    spending, adding it models creation. Construction always takes a deep
    copy, so neither the caller's snapshot nor another pool is aliased.
    """

    def __init__(self, initial: Union['UTXOPool', Dict[UTXO, 'Output'], None] = None):
        if initial is None:
            self._utxos: Dict[UTXO, 'Output'] = {}
        elif isinstance(initial, UTXOPool):
            self._utxos = copy.deepcopy(initial._utxos)
        else:
            self._utxos = copy.deepcopy(dict(initial))

    def add_utxo(self, utxo: UTXO, output: 'Output'):
        """Create (or replace) the output stored under utxo"""
        self._utxos[utxo] = output

    def remove_utxo(self, utxo: UTXO):
        """Spend utxo. Raises KeyError if it is not in the pool."""
        del self._utxos[utxo]

    def contains(self, utxo: UTXO) -> bool:
        return utxo in self._utxos

    def get_tx_output(self, utxo: UTXO) -> Optional['Output']:
        """Output stored under utxo, or None if it is not spendable"""
        return self._utxos.get(utxo)

    def get_all_utxo(self) -> List[UTXO]:
        """All spendable ids in deterministic order"""
        return sorted(self._utxos)

    def add_transaction_outputs(self, tx: 'Transaction') -> List[UTXO]:
        """Register every output of a finalized transaction, e.g. a coinbase"""
        tx_hash = tx.get_hash()
        created = []
        for index, output in enumerate(tx.outputs):
            utxo = UTXO(tx_hash, index)
            self.add_utxo(utxo, output)
            created.append(utxo)
        return created

    def total_value(self) -> Decimal:
        return sum_amounts(output.value for output in self._utxos.values())

    def get_hash(self) -> str:
        """Deterministic digest of pool contents"""
        return hash_dict_hex(self.to_dict())

    def copy(self) -> 'UTXOPool':
        return UTXOPool(self)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {utxo.to_key(): output.to_dict() for utxo, output in self._utxos.items()}

    def __contains__(self, utxo: UTXO) -> bool:
        return self.contains(utxo)

    def __len__(self) -> int:
        return len(self._utxos)
