"""AI Mimi health-coach backend."""
