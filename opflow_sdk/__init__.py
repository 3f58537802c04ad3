"""Shared helpers used across the opflow layers."""
