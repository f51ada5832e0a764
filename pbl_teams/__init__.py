"""PBL team management service."""
