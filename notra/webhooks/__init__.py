"""Incoming webhook handling and logs."""
