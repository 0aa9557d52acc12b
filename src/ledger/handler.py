"""
Ledger Layer - Transaction Handler
Validates transactions against the UTXO pool and settles batches
"""
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union
import threading
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from crypto.signature import verify_signature
from .amounts import sum_amounts
from .logger import Logger
from .transaction import Transaction
from .utxo import UTXO, UTXOPool

Verifier = Callable[[str, bytes, Optional[bytes]], bool]


class RejectReason(Enum):
    """Why a transaction is invalid against the current pool"""
    UNKNOWN_UTXO = "unknown_utxo"
    INVALID_SIGNATURE = "invalid_signature"
    DOUBLE_CLAIM = "double_claim"
    NEGATIVE_OUTPUT = "negative_output"
    INSUFFICIENT_INPUT = "insufficient_input"


class ScanOrder(Enum):
    """Order in which handle_txs scans pending candidates"""
    SUBMISSION = "submission"
    HASH = "hash"


class TxHandler:
    """
    Owns a private UTXO pool and accepts transactions into it.

    Every public method runs under one lock, so a commit (spend inputs,
    stamp hash, create outputs) is never observed half-applied.
    """

    def __init__(self, utxo_pool: Union[UTXOPool, Dict[UTXO, Any], None],
                 verifier: Verifier = verify_signature,
                 scan_order: Union[ScanOrder, str] = ScanOrder.SUBMISSION,
                 logger: Optional[Logger] = None):
        self.utxo_pool = UTXOPool(utxo_pool)
        self.verifier = verifier
        self.scan_order = ScanOrder(scan_order)
        self.logger = logger or Logger("txhandler", verbose=False)
        self._lock = threading.RLock()

        self.logger.log("POOL",
                        f"Handler initialized with {len(self.utxo_pool)} UTXOs, "
                        f"scan order {self.scan_order.value}")

    @classmethod
    def from_config(cls, utxo_pool, config: Dict[str, Any],
                    verifier: Verifier = verify_signature) -> 'TxHandler':
        logger = Logger("txhandler", verbose=config.get("verbose", False))
        return cls(utxo_pool, verifier=verifier,
                   scan_order=config.get("scan_order", ScanOrder.SUBMISSION.value),
                   logger=logger)

    def get_utxo_pool(self) -> UTXOPool:
        """Independent copy of the current pool"""
        with self._lock:
            return self.utxo_pool.copy()

    def validate_tx(self, tx: Transaction) -> Tuple[bool, Optional[RejectReason]]:
        """
        Check tx against the current pool.

        Returns (True, None) when:
          (1) every UTXO claimed by tx is in the pool,
          (2) every input signature verifies under the claimed output's owner,
          (3) no UTXO is claimed twice by tx,
          (4) every output value is non-negative, and
          (5) input value covers output value;
        otherwise (False, reason) for the first rule broken.
        """
        with self._lock:
            claimed: Set[UTXO] = set()
            input_values: List[Decimal] = []
            for index, tx_input in enumerate(tx.inputs):
                utxo = tx_input.get_utxo()
                prev_output = self.utxo_pool.get_tx_output(utxo)
                if prev_output is None:
                    return False, RejectReason.UNKNOWN_UTXO
                if not self.verifier(prev_output.address, tx.get_raw_data_to_sign(index),
                                     tx_input.signature):
                    return False, RejectReason.INVALID_SIGNATURE
                if utxo in claimed:
                    return False, RejectReason.DOUBLE_CLAIM
                claimed.add(utxo)
                input_values.append(prev_output.value)

            output_values: List[Decimal] = []
            for output in tx.outputs:
                if output.value < 0:
                    return False, RejectReason.NEGATIVE_OUTPUT
                output_values.append(output.value)

            # Sums are exact: rounding at context precision could mint value
            if sum_amounts(input_values) < sum_amounts(output_values):
                return False, RejectReason.INSUFFICIENT_INPUT
            return True, None

    def is_valid_tx(self, tx: Transaction) -> bool:
        """Side-effect free validity check"""
        return self.validate_tx(tx)[0]

    def _commit(self, possible_tx: Transaction) -> Tuple[Optional[Transaction], Optional[RejectReason]]:
        """Validate and apply possible_tx. Caller holds the lock."""
        valid, reason = self.validate_tx(possible_tx)
        if not valid:
            return None, reason

        tx = possible_tx.copy()
        for tx_input in tx.inputs:
            self.utxo_pool.remove_utxo(tx_input.get_utxo())

        tx_hash = tx.finalize()
        for index, output in enumerate(tx.outputs):
            self.utxo_pool.add_utxo(UTXO(tx_hash, index), output)

        self.logger.log("TX",
                        f"Accepted {tx_hash[:16]}...: spent {tx.num_inputs()}, "
                        f"created {tx.num_outputs()}")
        return tx, None

    def handle_tx(self, possible_tx: Transaction) -> Optional[Transaction]:
        """
        Commit one transaction if valid.

        Returns a finalized clone of possible_tx, or None (pool untouched).
        """
        with self._lock:
            tx, reason = self._commit(possible_tx)
            if tx is None:
                self.logger.log("TX", f"Rejected {possible_tx.content_hash()[:16]}...: {reason.value}")
            return tx

    def _ordered_candidates(self, possible_txs: Iterable[Transaction]) -> List[Transaction]:
        """Deduplicate by content hash (first wins), then apply the scan order"""
        seen: Set[str] = set()
        candidates = []
        for tx in possible_txs:
            tx_hash = tx.content_hash()
            if tx_hash in seen:
                continue
            seen.add(tx_hash)
            candidates.append((tx_hash, tx))

        if self.scan_order is ScanOrder.HASH:
            candidates.sort(key=lambda entry: entry[0])
        return [tx for _, tx in candidates]

    def handle_txs(self, possible_txs: Iterable[Transaction]) -> List[Transaction]:
        """
        Settle an unordered batch into a mutually valid accepted list.

        Scans pending candidates in scan order and commits the first one
        that is valid, then restarts the scan, until the batch is empty or a
        full pass accepts nothing. Chained spends settle in dependency order;
        of two conflicting spends the first valid one in scan order wins.
        Unaccepted candidates are dropped and logged once each with the
        reason from the final pass. Returns accepted transactions in
        acceptance order.
        """
        with self._lock:
            pending = self._ordered_candidates(possible_txs)
            accepted: List[Transaction] = []
            reasons: Dict[int, RejectReason] = {}
            passes = 0

            while pending:
                passes += 1
                progressed = False
                for position, candidate in enumerate(pending):
                    tx, reason = self._commit(candidate)
                    if tx is None:
                        reasons[id(candidate)] = reason
                        continue
                    accepted.append(tx)
                    del pending[position]
                    progressed = True
                    break
                if not progressed:
                    break

            # The last pass saw every leftover against the final pool
            for candidate in pending:
                self.logger.log("BATCH",
                                f"Dropped {candidate.content_hash()[:16]}...: "
                                f"{reasons[id(candidate)].value}")

            self.logger.log("BATCH",
                            f"Batch settled after {passes} passes: "
                            f"{len(accepted)} accepted, {len(pending)} dropped")
            return accepted
