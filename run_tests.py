#!/usr/bin/env python3
"""
Test runner script for the Channel Sync & Reconciliation engine.
"""
import sys
import subprocess
import argparse


def run_tests(coverage=True, verbose=False):
    """
    Run the test suite.

    Args:
        coverage: Whether to run with coverage
        verbose: Whether to run with verbose output
    """
    cmd = [sys.executable, "-m", "pytest"]

    if coverage:
        cmd.extend(["--cov=channel_sync", "--cov=config", "--cov-report=term-missing"])

    if verbose:
        cmd.append("-v")

    cmd.append("tests/")

    print(f"Running tests: {' '.join(cmd)}")
    print("=" * 60)

    try:
        subprocess.run(cmd, check=True)
        print("\n" + "=" * 60)
        print("✅ All tests passed!")
        return 0
    except subprocess.CalledProcessError as e:
        print("\n" + "=" * 60)
        print(f"❌ Tests failed with exit code {e.returncode}")
        return e.returncode


def main():
    """Main function."""
    parser = argparse.ArgumentParser(description="Test runner for the Channel Sync engine")
    parser.add_argument(
        "--no-coverage",
        action="store_true",
        help="Run tests without coverage"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Run with verbose output"
    )

    args = parser.parse_args()
    return run_tests(
        coverage=not args.no_coverage,
        verbose=args.verbose
    )


if __name__ == "__main__":
    sys.exit(main())
