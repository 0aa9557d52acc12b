"""
Master Test Runner
Runs every ledger test suite and writes a JSON report
"""
import sys
import os
import time
import json
import traceback

sys.path.append(os.path.join(os.path.dirname(__file__), 'src'))
sys.path.append(os.path.join(os.path.dirname(__file__), 'tests'))

from run_simulation import tee_output_to_file

TEST_SUITES = [
    ("test_crypto", "run_all_crypto_tests"),
    ("test_ledger", "run_all_ledger_tests"),
    ("test_handler", "run_all_handler_tests"),
    ("test_e2e", "run_all_tests")
]


def run_test_suite(test_module_name, test_function_name):
    """Run a test suite and return results"""
    print(f"\n{'='*80}")
    print(f"Running {test_module_name}")
    print(f"{'='*80}")

    try:
        module = __import__(test_module_name)
        start_time = time.time()
        exit_code = getattr(module, test_function_name)()
        return {
            "suite": test_module_name,
            "passed": exit_code == 0,
            "duration": time.time() - start_time
        }
    except Exception as e:
        print(f"Error running {test_module_name}: {e}")
        traceback.print_exc()
        return {"suite": test_module_name, "passed": False, "duration": 0, "error": str(e)}

def write_report(results, total_duration, all_passed):
    report = {
        "timestamp": time.time(),
        "total_duration": total_duration,
        "all_passed": all_passed,
        "results": results
    }
    os.makedirs("logs", exist_ok=True)
    with open("logs/test_report.json", "w") as f:
        json.dump(report, f, indent=2)

def main():
    """Run all test suites"""
    print("\n" + "="*80)
    print("UTXO LEDGER - COMPREHENSIVE TEST SUITE")
    print("="*80)

    start_time = time.time()
    results = [run_test_suite(module, function) for module, function in TEST_SUITES]
    total_duration = time.time() - start_time

    print("\n" + "="*80)
    print("FINAL TEST REPORT")
    print("="*80)
    for result in results:
        status = "PASSED" if result["passed"] else "FAILED"
        print(f"{status} - {result['suite']:<20} ({result['duration']:.2f}s)")
        if "error" in result:
            print(f"         Error: {result['error']}")
    print(f"\nTotal Duration: {total_duration:.2f}s")

    all_passed = all(result["passed"] for result in results)
    write_report(results, total_duration, all_passed)

    if all_passed:
        print("\nALL TEST SUITES PASSED!")
        print("   • Cryptography: Owner keys, signature oracle, canonical hashing")
        print("   • Ledger: UTXO pool isolation, transaction building and hashing")
        print("   • Handler: Validity rules, atomic commits, batch fixed point")
        print("   • End-to-End: Chains, double spends, forged inputs in shuffled batches")
        print("\nTest report saved to logs/test_report.json")
        return 0
    print("\nSOME TEST SUITES FAILED")
    return 1

if __name__ == "__main__":
    log_txt_path = os.path.join("logs", "run_all_test_output.txt")
    with tee_output_to_file(log_txt_path):
        print(f"[run_all_test] Writing console output to {log_txt_path}")
        exit_code = main()
        print(f"\nText output saved to {log_txt_path}")
        sys.exit(exit_code)
