"""Facility booking engine package."""
