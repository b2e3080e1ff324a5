"""HTTP and WebSocket surface for a live triplet graph."""
