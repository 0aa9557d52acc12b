"""
Main Simulation Runner
Settles a shuffled batch of chained and conflicting transactions
"""
import sys
import os
import json
import random
import hashlib
from contextlib import contextmanager
from typing import List, Tuple

sys.path.append(os.path.dirname(__file__))
from crypto.keys import KeyPair
from ledger.config import load_config
from ledger.handler import TxHandler
from ledger.logger import Logger
from ledger.transaction import Transaction
from ledger.utxo import UTXO, UTXOPool

GENESIS_VALUE = 100


class TeeStream:
    """Duplicate writes to multiple streams (e.g., console + file)."""
    def __init__(self, *streams):
        self.streams = streams

    def write(self, data):
        for stream in self.streams:
            stream.write(data)
            stream.flush()

    def flush(self):
        for stream in self.streams:
            stream.flush()


@contextmanager
def tee_output_to_file(log_path: str):
    """Context manager that mirrors stdout/stderr to a file."""
    os.makedirs(os.path.dirname(log_path), exist_ok=True)
    original_stdout = sys.stdout
    original_stderr = sys.stderr

    with open(log_path, "w", encoding="utf-8") as log_file:
        stdout_tee = TeeStream(original_stdout, log_file)
        stderr_tee = TeeStream(original_stderr, log_file)
        try:
            sys.stdout = stdout_tee
            sys.stderr = stderr_tee
            yield log_file
        finally:
            sys.stdout = original_stdout
            sys.stderr = original_stderr


def owner_keypairs(num_owners: int, seed: int) -> List[KeyPair]:
    """Deterministic owner keys derived from the simulation seed"""
    return [
        KeyPair.from_seed(hashlib.sha256(f"owner-{seed}-{i}".encode()).digest())
        for i in range(num_owners)
    ]

def build_genesis(owners: List[KeyPair], chain_id: str) -> Tuple[UTXOPool, List[UTXO]]:
    """One coinbase output per owner"""
    pool = UTXOPool()
    funded = []
    for owner in owners:
        coinbase = Transaction.coinbase(GENESIS_VALUE, owner.get_address(), chain_id)
        funded.extend(pool.add_transaction_outputs(coinbase))
    return pool, funded

def build_transfer(utxo: UTXO, owner: KeyPair, recipient: str, value, chain_id: str) -> Transaction:
    tx = Transaction(chain_id)
    tx.add_input(utxo.tx_hash, utxo.index)
    tx.add_output(value, recipient)
    tx.sign_input(0, owner)
    return tx


def run_simulation(num_owners, chain_length, chain_id, scan_order, seed, verbose):
    """
    Run one batch settlement

    Args:
        num_owners: Number of funded owners (at least 3)
        chain_length: Links in the spending chain starting at owner 0
        chain_id: Chain id every transaction is bound to
        scan_order: "submission" or "hash"
        seed: Seed for keys and batch shuffling
        verbose: Print handler logs
    """
    print("="*80)
    print("UTXO BATCH SETTLEMENT SIMULATION")
    print("="*80)
    print(f"Owners: {num_owners}")
    print(f"Chain length: {chain_length}")
    print(f"Scan order: {scan_order}")
    print("="*80)
    print()

    owners = owner_keypairs(num_owners, seed)
    pool, funded = build_genesis(owners, chain_id)
    initial_value = pool.total_value()

    # Chain: owner 0 -> 1 -> 2 ... each tx spends the previous one's output
    chain = []
    utxo, holder = funded[0], owners[0]
    for link in range(chain_length):
        recipient = owners[(link + 1) % num_owners]
        tx = build_transfer(utxo, holder, recipient.get_address(), GENESIS_VALUE, chain_id)
        chain.append(tx)
        utxo, holder = UTXO(tx.get_hash(), 0), recipient

    # Conflict: last owner spends its genesis output twice
    spender = owners[-1]
    double_spends = [
        build_transfer(funded[-1], spender, owners[1].get_address(), GENESIS_VALUE, chain_id),
        build_transfer(funded[-1], spender, owners[2].get_address(), GENESIS_VALUE, chain_id),
    ]

    batch = chain + double_spends
    random.Random(seed).shuffle(batch)

    logger = Logger("ledger", verbose)
    handler = TxHandler(pool, scan_order=scan_order, logger=logger)
    accepted = handler.handle_txs(batch)

    print("\n" + "="*80)
    print("SETTLEMENT COMPLETE")
    print("="*80)
    for i, tx in enumerate(accepted):
        print(f"  Accepted {i}: {tx.get_hash()[:16]}... "
              f"(inputs: {tx.num_inputs()}, outputs: {tx.num_outputs()})")

    final_pool = handler.get_utxo_pool()
    print(f"\nFinal pool: {len(final_pool)} UTXOs, total value {final_pool.total_value()}")
    print(f"Pool hash: {final_pool.get_hash()[:16]}...")

    accepted_hashes = {tx.get_hash() for tx in accepted}
    chain_settled = all(tx.get_hash() in accepted_hashes for tx in chain)
    one_conflict_winner = sum(tx.get_hash() in accepted_hashes for tx in double_spends) == 1
    value_conserved = final_pool.total_value() == initial_value

    print("\n" + "="*80)
    print(f"Chain settled: {chain_settled}")
    print(f"Exactly one double-spend accepted: {one_conflict_winner}")
    print(f"Value conserved: {value_conserved}")
    print("="*80)

    success = chain_settled and one_conflict_winner and value_conserved
    return handler, accepted, success


if __name__ == "__main__":
    config = load_config()

    log_txt_path = os.path.join("logs", "run_simulation_output.txt")
    with tee_output_to_file(log_txt_path):
        print(f"[run_simulation] Writing console output to {log_txt_path}")

        handler, accepted, success = run_simulation(
            num_owners=config["num_owners"],
            chain_length=config["chain_length"],
            chain_id=config["chain_id"],
            scan_order=config["scan_order"],
            seed=config["seed"],
            verbose=config["verbose"]
        )

        with open('logs/simulation_log.json', 'w') as f:
            json.dump(handler.logger.get_logs(), f, indent=2)

        print(f"\nLogs saved to logs/simulation_log.json")
        print(f"Text output saved to {log_txt_path}")

        if success:
            print("\nTest PASSED")
            sys.exit(0)
        else:
            print("\nTest FAILED")
            sys.exit(1)
