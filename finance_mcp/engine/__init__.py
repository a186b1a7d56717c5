"""Normalization core for upstream market data."""
