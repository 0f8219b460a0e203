"""
Integration Tests Package

End-to-end harness for the HTTP surface and the registry facade.

TEST AXIOMS:
=============
1. Every write goes through the registry; the API adds no rules
2. Decisions round-trip: 409, then the same call with the choice
3. Explicit failure: error bodies always carry an error code
"""
