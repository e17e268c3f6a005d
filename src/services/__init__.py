"""Application services reacting to domain events."""
