"""Utility helpers for AutoRig."""
