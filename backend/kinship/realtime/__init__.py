"""Real-time fan-out: connection registry, event gateway and ephemeral rooms."""
