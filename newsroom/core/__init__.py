"""Extraction queue, content flows and session wiring."""
