"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the terms contract parameter
codec. Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_round_trip.py - encode/decode are mutual inverses, bad input is rejected

These tests use hypothesis for property-based testing.
"""
