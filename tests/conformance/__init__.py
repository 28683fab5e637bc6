"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Supply conservation and asset-tag bounds
2. atomicity.py - Refused operations change nothing; frozen and unverified limits
3. temporal.py - Historical balances never change once a snapshot is taken
4. dividend_bounds.py - Claims never exceed deposits; residue is bounded
5. compliance_isolation.py - Rejected attempts never reach module counters

These tests use hypothesis for property-based testing.
"""
