"""Resource handlers.

Each handler accepts a JSON-like payload dict, validates its contract and
delegates to the matching lifecycle orchestrator:
- pipeline: create / read / update / delete pipelines
- log_delivery: create / read / delete log-delivery configurations
"""
