"""Utility helpers shared across nativeplug."""
