"""
queuectl

A durable background job queue for shell commands, with a pool of workers
that claim jobs optimistically, retry with exponential backoff, and move
exhausted jobs to a dead letter queue.
"""

__version__ = "1.0.0"
