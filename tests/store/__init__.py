"""Tests for the package store."""
