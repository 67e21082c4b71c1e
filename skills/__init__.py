"""Named analysis skills."""
