"""Merge engine: store, live subscriber, and feed controller."""
