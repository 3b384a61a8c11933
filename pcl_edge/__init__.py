"""PCL Edge: CORS, routing and idempotent checkout in front of the booking widget's backends."""

__version__ = "1.0.0"
