"""Polling orchestration.

Drives async handles to terminal states:
1. normalizer: raw platform status → shared state model
2. poller: tick loop with backoff, timeout and cancellation
3. workflow: sequential multi-step submit-and-wait
"""
