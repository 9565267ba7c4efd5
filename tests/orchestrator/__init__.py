"""
Tests for the scheduler, its wiring and the worker runner.
"""
