"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the dividend ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Value paid out never exceeds value deposited
2. atomicity.py - Rejected operations leave no trace
3. neutrality.py - Share movements never create or destroy entitlement
4. idempotency.py - Repeated withdrawals pay once

These tests use hypothesis for property-based testing.
"""
