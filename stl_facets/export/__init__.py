"""Slice layer export."""
