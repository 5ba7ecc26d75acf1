"""Durable per-topic knowledge storage."""
