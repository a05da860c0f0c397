"""Model access and organization memory."""
