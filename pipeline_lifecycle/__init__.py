"""Pipeline lifecycle engine.

Create, update and delete asynchronously-provisioned control-plane
resources (data pipelines and log-delivery configurations), polling each
mutation to convergence within a bounded timeout and cleaning up after a
failed create.
"""

__version__ = "0.1.0"
