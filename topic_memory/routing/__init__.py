"""Question-to-topic routing."""
