"""filegate: file sharing with owner-approved access requests and per-file key custody."""
