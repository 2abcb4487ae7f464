"""Durable webhook delivery: persistent queue, retrying sender and flush."""
