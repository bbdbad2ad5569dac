"""OmniDev backend service."""
