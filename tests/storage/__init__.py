"""
Tests for storage repositories.
"""
