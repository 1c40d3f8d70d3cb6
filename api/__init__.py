"""HTTP API for Signal Watcher."""
