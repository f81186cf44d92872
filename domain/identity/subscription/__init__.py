"""Subscription state machine."""
