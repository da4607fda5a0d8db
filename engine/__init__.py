"""Session engine: state machine, per-session actors and the actor registry."""
