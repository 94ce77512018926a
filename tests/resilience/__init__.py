"""Tests for resilience module."""
