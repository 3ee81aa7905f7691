"""Policy module — typed access to quality and privacy configuration."""
