"""
Unit Tests for Ledger Data Model
Tests UTXO identifiers, the UTXO pool, and transaction building/hashing
"""
import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from decimal import Decimal
from crypto.keys import KeyPair
from crypto.signature import verify_signature
from ledger.utxo import UTXO, UTXOPool
from ledger.transaction import Input, Output, Transaction
from ledger.config import load_config, DEFAULT_CONFIG

CHAIN_ID = "test-chain"


def _ledger_diagnostics(label: str, pool: UTXOPool = None, transactions=None):
    print("\n" + "~" * 60)
    print(f"LEDGER DIAGNOSTICS: {label}")
    print("~" * 60)
    if pool is not None:
        print(f" pool_hash: {pool.get_hash()}")
        print(f" pool_size: {len(pool)}")
        print(f" total_value: {pool.total_value()}")
    if transactions is not None:
        for tx in transactions:
            print(f" tx: {tx!r}")
    print("")

def test_utxo_identity():
    """Test structural equality, hashing and ordering of UTXO ids"""
    print("\nTEST: UTXO Identity")

    a = UTXO("ab" * 32, 0)
    b = UTXO("ab" * 32, 0)
    c = UTXO("ab" * 32, 1)

    assert a == b, "Structurally equal UTXOs compare unequal"
    assert hash(a) == hash(b), "Equal UTXOs hash differently"
    assert a != c, "Different indices compare equal"
    assert len({a, b, c}) == 2, "Set did not collapse equal UTXOs"
    assert sorted([c, a]) == [a, c], "UTXO ordering is wrong"
    assert UTXO.from_key(a.to_key()) == a, "Key round-trip failed"

    print("PASSED: UTXO identity is structural")
    return True

def test_pool_operations():
    """Test add, lookup, remove and value accounting"""
    print("\nTEST: Pool Operations")

    owner = KeyPair().get_address()
    pool = UTXOPool()
    utxo = UTXO("11" * 32, 0)

    assert not pool.contains(utxo), "Empty pool contains a UTXO"
    assert pool.get_tx_output(utxo) is None, "Missing UTXO returned an output"

    pool.add_utxo(utxo, Output(10, owner))
    assert utxo in pool, "Added UTXO not found"
    assert pool.get_tx_output(utxo) == Output(10, owner), "Wrong output stored"
    assert pool.total_value() == Decimal(10), "Wrong total value"

    pool.remove_utxo(utxo)
    assert len(pool) == 0, "UTXO not removed"

    try:
        pool.remove_utxo(utxo)
        raise AssertionError("Removing a spent UTXO succeeded")
    except KeyError:
        pass
    _ledger_diagnostics("pool_operations", pool=pool)

    print("PASSED: Pool operations work correctly")
    return True

def test_pool_isolation():
    """Test that pools deep-copy their snapshot"""
    print("\nTEST: Pool Isolation")

    owner = KeyPair().get_address()
    u1, u2 = UTXO("22" * 32, 0), UTXO("22" * 32, 1)
    snapshot = {u1: Output(5, owner)}

    pool = UTXOPool(snapshot)
    pool.add_utxo(u2, Output(7, owner))
    assert u2 not in snapshot, "Pool aliased the caller's dict"

    copy = pool.copy()
    copy.remove_utxo(u1)
    assert u1 in pool, "Copy aliased the original pool"
    assert pool.get_hash() != copy.get_hash(), "Different pools share a hash"
    assert pool.get_all_utxo() == [u1, u2], "Pool listing is not sorted"
    _ledger_diagnostics("pool_isolation", pool=pool)

    print("PASSED: Pools are isolated copies")
    return True

def test_output_immutability():
    """Test that outputs and inputs cannot be changed after creation"""
    print("\nTEST: Output Immutability")

    output = Output("1.5", "owner")
    tx_input = Input("33" * 32, 0)
    for obj, attr in ((output, "value"), (tx_input, "signature")):
        try:
            setattr(obj, attr, 0)
            raise AssertionError(f"{type(obj).__name__}.{attr} was assignable")
        except AttributeError:
            pass

    assert output.value == Decimal("1.5"), "Output value changed"
    assert Output(0.1, "k").value == Decimal("0.1"), "Float amount not converted via str"
    signed = tx_input.with_signature(b"sig")
    assert tx_input.signature is None and signed.signature == b"sig", \
        "with_signature modified the original input"

    print("PASSED: Inputs and outputs are immutable")
    return True

def test_transaction_hash_determinism():
    """Test canonical hashing of transactions"""
    print("\nTEST: Transaction Hash Determinism")

    owner = KeyPair().get_address()
    tx1 = Transaction(CHAIN_ID)
    tx1.add_input("44" * 32, 0)
    tx1.add_output(10, owner)

    tx2 = Transaction(CHAIN_ID)
    tx2.add_input("44" * 32, 0)
    tx2.add_output("10.00", owner)

    assert tx1.get_hash() == tx2.get_hash(), "Equal amounts in different notation hashed differently"

    tx3 = Transaction("other-chain")
    tx3.add_input("44" * 32, 0)
    tx3.add_output(10, owner)
    assert tx1.get_hash() != tx3.get_hash(), "Chain id not part of the hash"

    precise = Output("1.00000000000000000000000000001", owner)
    assert precise.to_dict()["value"] == "1.00000000000000000000000000001", "Amount text was rounded"
    assert Output("1E-40", owner).to_dict()["value"] == "0." + "0" * 39 + "1", "Tiny amount mangled"

    before = tx1.get_hash()
    tx1.add_output(1, owner)
    assert tx1.get_hash() != before, "Cached hash survived a mutation"
    _ledger_diagnostics("transaction_hash_determinism", transactions=[tx1, tx2, tx3])

    print("PASSED: Transaction hashing is deterministic")
    return True

def test_message_to_sign():
    """Test that the message to sign excludes signatures and binds the input index"""
    print("\nTEST: Message To Sign")

    keypair = KeyPair()
    tx = Transaction(CHAIN_ID)
    tx.add_input("55" * 32, 0)
    tx.add_input("55" * 32, 1)
    tx.add_output(3, keypair.get_address())

    msg0 = tx.get_raw_data_to_sign(0)
    msg1 = tx.get_raw_data_to_sign(1)
    assert msg0 != msg1, "Input index not bound into the message"

    unsigned_hash = tx.get_hash()
    tx.sign_input(0, keypair)
    assert tx.get_raw_data_to_sign(0) == msg0, "Signing changed the message to sign"
    assert tx.get_raw_data_to_sign(1) == msg1, "Signing changed another input's message"
    assert tx.get_hash() != unsigned_hash, "Signatures are not part of the content hash"
    assert verify_signature(keypair.get_address(), msg0, tx.get_input(0).signature), \
        "Attached signature does not verify"

    try:
        tx.get_raw_data_to_sign(2)
        raise AssertionError("Out-of-range input index accepted")
    except IndexError:
        pass

    print("PASSED: Message to sign is correct")
    return True

def test_transaction_builder():
    """Test input removal, finalization and cloning"""
    print("\nTEST: Transaction Builder")

    owner = KeyPair().get_address()
    tx = Transaction(CHAIN_ID)
    tx.add_input("66" * 32, 0)
    tx.add_input("66" * 32, 1)
    tx.add_input("66" * 32, 2)
    tx.add_output(1, owner)

    tx.remove_input(0)
    tx.remove_input(UTXO("66" * 32, 2))
    assert [i.output_index for i in tx.inputs] == [1], "Inputs not removed"

    clone = tx.copy()
    tx_hash = clone.finalize()
    assert clone.finalized and tx_hash == tx.get_hash(), "Clone hash differs from original"

    try:
        clone.add_output(1, owner)
        raise AssertionError("Finalized transaction accepted a mutation")
    except ValueError:
        pass

    tx.add_output(2, owner)
    assert clone.num_outputs() == 1, "Mutating the original changed the clone"

    coinbase = Transaction.coinbase(50, owner, CHAIN_ID)
    assert coinbase.finalized and coinbase.num_inputs() == 0, "Coinbase malformed"

    print("PASSED: Transaction builder works correctly")
    return True

def test_transaction_serialization():
    """Test to_dict / from_dict preserve content and hash"""
    print("\nTEST: Transaction Serialization")

    keypair = KeyPair()
    tx = Transaction(CHAIN_ID)
    tx.add_input("77" * 32, 0)
    tx.add_output("2.5", keypair.get_address())
    tx.sign_input(0, keypair)

    restored = Transaction.from_dict(tx.to_dict())
    assert restored.get_hash() == tx.get_hash(), "Hash changed across serialization"
    assert restored.get_input(0).signature == tx.get_input(0).signature, "Signature lost"

    tampered = tx.to_dict()
    tampered["outputs"][0]["value"] = "3"
    try:
        Transaction.from_dict(tampered)
        raise AssertionError("Tampered transaction deserialized")
    except ValueError:
        pass

    print("PASSED: Transaction serialization preserves integrity")
    return True

def test_config_defaults():
    """Test that a missing config file falls back to defaults"""
    print("\nTEST: Config Defaults")

    config = load_config(os.path.join(os.path.dirname(__file__), "does-not-exist.json"))
    assert config == DEFAULT_CONFIG, "Missing config did not yield defaults"
    assert config is not DEFAULT_CONFIG, "Defaults returned by reference"

    print("PASSED: Config falls back to defaults")
    return True

def run_all_ledger_tests():
    """Run all ledger tests"""
    print("\n" + "="*80)
    print("RUNNING LEDGER UNIT TESTS")
    print("="*80)

    tests = [
        test_utxo_identity,
        test_pool_operations,
        test_pool_isolation,
        test_output_immutability,
        test_transaction_hash_determinism,
        test_message_to_sign,
        test_transaction_builder,
        test_transaction_serialization,
        test_config_defaults
    ]

    results = []
    for test_func in tests:
        try:
            result = test_func()
            results.append((test_func.__name__, result))
        except Exception as e:
            print(f"FAILED: {e}")
            import traceback
            traceback.print_exc()
            results.append((test_func.__name__, False))

    print("\n" + "="*80)
    print("LEDGER TEST SUMMARY")
    print("="*80)

    for name, result in results:
        status = "PASSED" if result else "FAILED"
        print(f"{status}: {name}")

    all_passed = all(r for _, r in results)

    if all_passed:
        print("\nALL LEDGER TESTS PASSED!")
        return 0
    else:
        print("\nSOME TESTS FAILED")
        return 1

if __name__ == "__main__":
    exit_code = run_all_ledger_tests()
    sys.exit(exit_code)
