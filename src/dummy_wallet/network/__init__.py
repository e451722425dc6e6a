"""Network configurations: where the service listens and which nodes it talks to."""
