"""Publish vault notes, with optional audio, to Pouch destinations."""
