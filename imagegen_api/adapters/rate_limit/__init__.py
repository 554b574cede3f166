"""Throttling and usage metering adapters.

Two policies share the key-value store: a sliding-window request throttle
(fail closed) and a fixed daily budget for image generations (fail open).
"""
