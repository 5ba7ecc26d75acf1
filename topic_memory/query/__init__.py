"""Question answering over topic partitions."""
