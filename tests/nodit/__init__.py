"""Tests for Nodit client module."""
