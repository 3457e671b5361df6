"""Real-time relay between a smart-lock controller and its mobile clients."""
