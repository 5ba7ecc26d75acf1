"""
F1 Topic Memory

A topic-partitioned knowledge service: news articles are periodically
fetched and summarized into per-topic partitions, and free-text questions
are routed to a topic and answered from that topic's accumulated entries.
"""

__version__ = "0.1.0"
