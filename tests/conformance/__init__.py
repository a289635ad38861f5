"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending pool.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - All-or-nothing operations and stale-operation rejection
2. conservation.py - Aggregate sums, share solvency and no-dilution
3. idempotency.py - Reads never change state
4. determinism.py - Identical operation sequences give identical pools

These tests use hypothesis for property-based testing.
"""
