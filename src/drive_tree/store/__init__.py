"""Remote folder/file store client."""
