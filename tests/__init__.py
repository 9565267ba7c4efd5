"""
Test suite for the attestation sync engine.
"""
