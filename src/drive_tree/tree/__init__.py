"""Folder tree validation and upload reconstruction."""
