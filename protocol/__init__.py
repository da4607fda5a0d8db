"""Session WebSocket protocol."""
